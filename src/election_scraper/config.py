"""
Configuration for the static and dynamic scrapers.

Page addresses, selectors and timing knobs live here as dataclasses so
that scripts can load them from JSON instead of editing code.
"""

from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional, Type, TypeVar, Any
import json
import logging
import sys
import time
from pathlib import Path


DEFAULT_USER_AGENT = "Election-Scraper Teaching Tool (Academic Use)"

T = TypeVar("T")


@dataclass
class StaticTableConfig:
    """Settings for extracting one table from a static page."""
    url: str = ""
    index: int = 0
    selector: Optional[str] = None  # CSS or XPath
    numeric_columns: Optional[List[str]] = None
    column_map: Dict[str, str] = field(default_factory=dict)
    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT


@dataclass
class LookupConfig:
    """
    Settings for the browser-driven constituency lookup.

    Selectors may be CSS or XPath; anything starting with ``/``, ``(``,
    ``./`` or ``../`` is treated as XPath.
    """
    url: str = ""
    search_input: str = "input[type='search']"
    suggestions_panel: str = ".suggestions"
    results_panel: str = ".results"
    submit_button: Optional[str] = None  # ENTER is sent when unset
    consent_button: Optional[str] = None
    consent_frame: Optional[str] = None
    party_marker: Optional[str] = None
    party_style_property: str = "background-color"
    party_colours: Dict[str, str] = field(default_factory=dict)
    column_map: Dict[str, str] = field(default_factory=lambda: {
        "Candidate": "candidate",
        "Votes": "votes",
        "% of Votes": "vote_share",
    })
    table_index: int = 0
    poll_interval: float = 0.5
    max_wait: Optional[float] = None  # None polls until suggestions appear
    page_timeout: float = 10.0
    delay: float = 2.0

    def __post_init__(self):
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if self.delay < 0:
            raise ValueError("delay cannot be negative")


def load_config(path: Path, cls: Type[T] = LookupConfig) -> T:
    """
    Load a configuration dataclass from a JSON file.

    Parameters
    ----------
    path : Path
        JSON file whose top-level keys are dataclass field names
    cls : type
        StaticTableConfig or LookupConfig

    Returns
    -------
    An instance of ``cls``

    Raises
    ------
    ValueError
        If the file contains keys the dataclass does not define
    """
    with open(path, "r", encoding="utf-8") as f:
        raw: Dict[str, Any] = json.load(f)

    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys in {path}: {', '.join(unknown)}")

    return cls(**raw)


def setup_logging(verbose: bool = True, log_dir: Optional[Path] = Path("logs")) -> None:
    """Setup logging configuration."""
    level = logging.INFO if verbose else logging.WARNING

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(exist_ok=True)
        handlers.insert(0, logging.FileHandler(log_dir / f"scraper_{int(time.time())}.log"))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )
