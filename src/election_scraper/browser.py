"""
Browser-driven constituency lookup.

Some results pages only render their tables after a search form has been
filled in by JavaScript. This module drives Chrome through Selenium:
dismiss the consent overlay, type a constituency into the search box,
poll the suggestions panel until it fills, submit, and read the rendered
results back into a table enriched with party labels.
"""

from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
import logging
import re
import time

import pandas as pd
from matplotlib.colors import to_hex
from selenium import webdriver
from selenium.common.exceptions import (
    NoSuchElementException,
    StaleElementReferenceException,
    TimeoutException,
)
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from tqdm import tqdm

from .config import LookupConfig
from .data_structures import ConstituencyResult, LookupState, combine_results
from .tables import clean_numeric, is_xpath, rename_columns, select_table


logger = logging.getLogger(__name__)


class SuggestionTimeoutError(TimeoutError):
    """Raised when a bounded suggestions poll runs out of time."""


@contextmanager
def browser_session(headless: bool = True, incognito: bool = True) -> Iterator[webdriver.Chrome]:
    """
    Start a Chrome session and guarantee it is shut down.

    The driver is quit when the block exits, including when a lookup
    raises part way through a batch.
    """
    chrome_options = Options()
    if incognito:
        chrome_options.add_argument('incognito')
    if headless:
        chrome_options.add_argument('headless')

    chrome_driver = webdriver.Chrome(service=Service(), options=chrome_options)
    logger.info("Browser session started")
    try:
        yield chrome_driver
    finally:
        chrome_driver.quit()
        logger.info("Browser session closed")


def locator(selector: str) -> Tuple[str, str]:
    """Selenium locator tuple for a CSS or XPath selector."""
    return (By.XPATH, selector) if is_xpath(selector) else (By.CSS_SELECTOR, selector)


def parse_style(style: Optional[str]) -> Dict[str, str]:
    """Split an inline style attribute into lower-cased property/value pairs."""
    declarations = {}
    for declaration in (style or '').split(';'):
        prop, sep, value = declaration.partition(':')
        if sep and prop.strip():
            declarations[prop.strip().lower()] = value.strip()
    return declarations


RGB_PATTERN = re.compile(
    r"rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*[\d.]+%?\s*)?\)",
    re.IGNORECASE
)
# Whole rgb()/rgba() calls or single space-separated words
COLOUR_TOKEN_PATTERN = re.compile(r"rgba?\([^)]*\)|\S+", re.IGNORECASE)


def _normalise_colour(value: str) -> str:
    """Canonical ``#rrggbb`` for hex, rgb() and rgba() colours."""
    value = value.strip()
    match = RGB_PATTERN.fullmatch(value)
    if match:
        return to_hex([min(float(c), 255.0) / 255 for c in match.groups()])
    try:
        return to_hex(value)
    except ValueError:
        return re.sub(r'\s+', '', value).lower()


def party_from_style(
    style: Optional[str],
    prop: str = "background-color",
    colours: Optional[Dict[str, str]] = None
) -> Optional[str]:
    """
    Derive a party label from an element's inline style.

    The value of ``prop`` is looked up in ``colours``. Hex, rgb() and rgba()
    spellings of the same colour match each other; Chrome reports inline
    hex colours as rgb(). Unmapped values are returned as-is so they can
    be mapped later; a missing property gives None.
    """
    value = parse_style(style).get(prop.lower())
    if not value:
        return None
    # Shorthand like "border-left: 4px solid #ff9933" keeps the colour last
    candidates = [value] + COLOUR_TOKEN_PATTERN.findall(value)[::-1]
    mapping = {_normalise_colour(k): v for k, v in (colours or {}).items()}
    for candidate in candidates:
        party = mapping.get(_normalise_colour(candidate))
        if party is not None:
            return party
    return value


class ConstituencyLookup:
    """
    Drive a search form to fetch one constituency's results at a time.

    The same driver is reused for every query. Consent is dismissed on
    the first navigation only.
    """

    def __init__(self, driver, config: LookupConfig):
        """
        Parameters
        ----------
        driver : selenium WebDriver
            Open browser session, usually from ``browser_session``
        config : LookupConfig
            Page address, selectors and timing
        """
        self.driver = driver
        self.config = config
        self.state = LookupState.SESSION_STARTED
        self.consent_handled = False
        self.logger = logging.getLogger(__name__)

    def _find(self, selector: str):
        return self.driver.find_element(*locator(selector))

    def navigate(self) -> None:
        self.driver.get(self.config.url)
        self.state = LookupState.NAVIGATED

    def dismiss_consent(self) -> bool:
        """
        Click through the consent overlay if one is configured and shown.

        Returns
        -------
        bool
            True if a consent button was clicked
        """
        cfg = self.config
        self.consent_handled = True

        if not cfg.consent_button:
            self.state = LookupState.OVERLAY_DISMISSED
            return False

        wait = WebDriverWait(self.driver, cfg.page_timeout)
        clicked = False
        try:
            if cfg.consent_frame:
                frame = wait.until(EC.presence_of_element_located(locator(cfg.consent_frame)))
                self.driver.switch_to.frame(frame)

            button = wait.until(EC.element_to_be_clickable(locator(cfg.consent_button)))
            button.click()
            clicked = True
            self.logger.info("Consent overlay dismissed")

        except TimeoutException:
            self.logger.info("No consent overlay shown")

        finally:
            if cfg.consent_frame:
                self.driver.switch_to.default_content()

        self.state = LookupState.OVERLAY_DISMISSED
        return clicked

    def submit_query(self, query: str) -> None:
        """Type the query into the search box."""
        search = self._find(self.config.search_input)
        search.clear()
        search.send_keys(query)
        self.state = LookupState.QUERY_SUBMITTED

    def _suggestions_text(self) -> str:
        try:
            return self._find(self.config.suggestions_panel).text.strip()
        except (NoSuchElementException, StaleElementReferenceException):
            # Panel missing or re-rendered mid-read, still pending
            return ''

    def wait_for_suggestions(self) -> str:
        """
        Poll the suggestions panel until it shows any text.

        Sleeps ``poll_interval`` between checks. Without ``max_wait`` the
        poll never gives up.

        Raises
        ------
        SuggestionTimeoutError
            If ``max_wait`` is set and elapses with the panel still empty
        """
        cfg = self.config
        self.state = LookupState.SUGGESTIONS_PENDING
        started = time.monotonic()
        polls = 0

        while True:
            text = self._suggestions_text()
            polls += 1
            if text:
                self.logger.debug(f"Suggestions ready after {polls} polls")
                self.state = LookupState.SUGGESTIONS_READY
                return text

            if cfg.max_wait is not None and time.monotonic() - started >= cfg.max_wait:
                raise SuggestionTimeoutError(
                    f"No suggestions after {cfg.max_wait:.1f}s ({polls} polls)"
                )

            time.sleep(cfg.poll_interval)

    def submit(self) -> None:
        if self.config.submit_button:
            self._find(self.config.submit_button).click()
        else:
            self._find(self.config.search_input).send_keys(Keys.ENTER)

    def read_results(self) -> pd.DataFrame:
        """Wait for the results panel and parse the table it renders."""
        cfg = self.config
        panel = WebDriverWait(self.driver, cfg.page_timeout).until(
            EC.presence_of_element_located(locator(cfg.results_panel))
        )
        self.state = LookupState.RESULTS_LOADED

        markup = panel.get_attribute('innerHTML') or ''
        frame = select_table(markup, index=cfg.table_index)
        frame = rename_columns(frame, cfg.column_map)
        numeric = [column for column in ('votes', 'vote_share') if column in frame.columns]
        return clean_numeric(frame, columns=numeric)

    def read_parties(self) -> List[Optional[str]]:
        """Party labels from the style attribute of each party marker, in page order."""
        cfg = self.config
        if not cfg.party_marker:
            return []

        markers = self.driver.find_elements(*locator(cfg.party_marker))
        return [
            party_from_style(marker.get_attribute('style'), cfg.party_style_property, cfg.party_colours)
            for marker in markers
        ]

    def lookup(self, constituency: str) -> ConstituencyResult:
        """
        Fetch the results table for one constituency.

        Party labels are matched to table rows by position. When the
        counts differ a warning is logged and the unmatched rows get no
        party.
        """
        self.navigate()
        if not self.consent_handled:
            self.dismiss_consent()

        self.submit_query(constituency)
        self.wait_for_suggestions()
        self.submit()

        frame = self.read_results()
        parties = self.read_parties()

        if self.config.party_marker and len(parties) != len(frame):
            self.logger.warning(
                f"{constituency}: {len(frame)} result rows but {len(parties)} party markers"
            )

        result = ConstituencyResult.from_frame(constituency, frame, parties)
        self.state = LookupState.EXTRACTED
        self.logger.info(f"{constituency}: extracted {len(result)} candidates")
        return result


def scrape_constituencies(
    lookup: ConstituencyLookup,
    constituencies: Iterable[str],
    delay: Optional[float] = None,
    continue_on_error: bool = False
) -> pd.DataFrame:
    """
    Look up each constituency in turn and combine the results.

    Parameters
    ----------
    lookup : ConstituencyLookup
        Lookup bound to an open browser session
    constituencies : iterable of str
        Query terms, searched in order
    delay : float, optional
        Seconds to wait after each query; defaults to the lookup's config
    continue_on_error : bool
        Log and skip failed constituencies instead of aborting the batch

    Returns
    -------
    pd.DataFrame
        Combined table with one row per candidate
    """
    delay = lookup.config.delay if delay is None else delay
    results = []
    failed = []

    for constituency in tqdm(list(constituencies), desc="Scraping"):
        try:
            results.append(lookup.lookup(constituency))
        except Exception as e:
            if not continue_on_error:
                raise
            logger.error(f"Lookup failed for {constituency}: {e}")
            failed.append(constituency)

        time.sleep(delay)

    if failed:
        logger.warning(f"{len(failed)} constituencies failed: {', '.join(failed)}")

    return combine_results(results)
