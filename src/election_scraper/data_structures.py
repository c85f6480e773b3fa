"""
Shared data structures for scraped election results.

This module defines the records produced by the constituency lookup and
the tabular layout used when results are combined for analysis.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Any
import numpy as np
import pandas as pd


RESULT_COLUMNS = ["constituency", "party", "candidate", "votes", "vote_share"]


class LookupState(Enum):
    """Stages of a single constituency lookup in the browser."""
    SESSION_STARTED = "session-started"
    NAVIGATED = "navigated"
    OVERLAY_DISMISSED = "overlay-dismissed"
    QUERY_SUBMITTED = "query-submitted"
    SUGGESTIONS_PENDING = "suggestions-pending"
    SUGGESTIONS_READY = "suggestions-ready"
    RESULTS_LOADED = "results-loaded"
    EXTRACTED = "extracted"


@dataclass
class CandidateResult:
    """One candidate row from a constituency results table."""
    candidate: str
    votes: float = np.nan  # NaN when the cell could not be coerced
    vote_share: Optional[float] = None
    party: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "party": self.party,
            "candidate": self.candidate,
            "votes": self.votes,
            "vote_share": self.vote_share,
        }


@dataclass
class ConstituencyResult:
    """
    All candidate rows for one constituency.

    Candidate order matches the order of rows in the rendered results
    table, which is also the order party labels are assigned in.
    """
    constituency: str
    candidates: List[CandidateResult] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.candidates)

    @property
    def total_votes(self) -> float:
        return float(np.nansum([c.votes for c in self.candidates]))

    def to_dataframe(self) -> pd.DataFrame:
        """Return one row per candidate with the standard result columns."""
        rows = [
            {"constituency": self.constituency, **candidate.to_dict()}
            for candidate in self.candidates
        ]
        frame = pd.DataFrame(rows, columns=RESULT_COLUMNS)
        frame["votes"] = pd.to_numeric(frame["votes"], errors="coerce")
        frame["vote_share"] = pd.to_numeric(frame["vote_share"], errors="coerce")
        return frame

    @classmethod
    def from_frame(
        cls,
        constituency: str,
        frame: pd.DataFrame,
        parties: Optional[List[Optional[str]]] = None
    ) -> "ConstituencyResult":
        """
        Build a result from a cleaned results table.

        Parameters
        ----------
        constituency : str
            Query term the table was returned for
        frame : pd.DataFrame
            Table with at least a ``candidate`` column; ``votes`` and
            ``vote_share`` are used when present
        parties : list, optional
            Party labels aligned positionally with the table rows
        """
        parties = parties or []
        candidates = []
        for position, (_, row) in enumerate(frame.iterrows()):
            share = row.get("vote_share")
            name = row.get("candidate")
            candidates.append(CandidateResult(
                candidate="" if name is None or pd.isna(name) else str(name).strip(),
                votes=row.get("votes", np.nan),
                vote_share=None if share is None or pd.isna(share) else float(share),
                party=parties[position] if position < len(parties) else None,
            ))
        return cls(constituency=constituency, candidates=candidates)


def combine_results(results: List[ConstituencyResult]) -> pd.DataFrame:
    """Concatenate constituency results row-wise into one table."""
    frames = [result.to_dataframe() for result in results if len(result)]
    if not frames:
        return pd.DataFrame(columns=RESULT_COLUMNS)
    return pd.concat(frames, ignore_index=True)[RESULT_COLUMNS]
