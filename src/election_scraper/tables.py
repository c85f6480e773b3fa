"""
Static HTML table extraction.

This module fetches pages over HTTP, locates tables by position or by a
CSS/XPath selector, and turns them into cleaned pandas DataFrames ready
for plotting or regression.
"""

from typing import Dict, List, Optional, Union
import logging
import re
import time
from urllib.parse import urljoin
from urllib.robotparser import RobotFileParser

import pandas as pd
import requests
from bs4 import BeautifulSoup, Tag
from lxml import html as lxml_html

from .config import DEFAULT_USER_AGENT, StaticTableConfig


logger = logging.getLogger(__name__)

FOOTNOTE_PATTERN = re.compile(r"\[[^\]]*\]")
# Thousands separators, percent/plus signs and whitespace
FORMATTING_PATTERN = re.compile(r"[,%+\s]")


class TableNotFoundError(LookupError):
    """Raised when no table matches the requested position or selector."""


def is_xpath(selector: str) -> bool:
    """Return True if the selector should be evaluated as XPath."""
    return selector.lstrip().startswith(("/", "(", "./", "../"))


class TableScraper:
    """
    HTTP fetcher for pages that carry their data in plain HTML tables.

    Failures are not retried: network and HTTP errors propagate to the
    caller as ``requests`` exceptions.
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        rate_limit: float = 0.0,
        check_robots: bool = False
    ):
        """
        Initialize the scraper.

        Parameters
        ----------
        user_agent : str
            User-Agent header sent with every request
        timeout : float
            Seconds before a request is abandoned
        rate_limit : float
            Seconds to wait before each request (0 = no waiting)
        check_robots : bool
            Consult robots.txt before fetching and warn when disallowed
        """
        self.timeout = timeout
        self.rate_limit = rate_limit
        self.check_robots = check_robots

        self.session = requests.Session()
        self.session.headers.update({'User-Agent': user_agent})

        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: StaticTableConfig) -> "TableScraper":
        return cls(user_agent=config.user_agent, timeout=config.timeout)

    def _check_robots_txt(self, url: str) -> None:
        """Check robots.txt compliance."""
        try:
            rp = RobotFileParser()
            rp.set_url(urljoin(url, '/robots.txt'))
            rp.read()

            user_agent = self.session.headers.get('User-Agent', '*')
            if not rp.can_fetch(user_agent, url):
                self.logger.warning(f"robots.txt disallows access to {url}")

        except Exception as e:
            self.logger.warning(f"Could not check robots.txt: {e}")

    def fetch_page(self, url: str) -> str:
        """
        Fetch a page and return its markup.

        Raises
        ------
        requests.exceptions.RequestException
            On connection failures, timeouts and non-2xx responses
        """
        if self.check_robots:
            self._check_robots_txt(url)

        if self.rate_limit > 0:
            time.sleep(self.rate_limit)

        self.logger.info(f"Fetching {url}")
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.text

    def extract_table(
        self,
        url: str,
        index: int = 0,
        selector: Optional[str] = None,
        numeric_columns: Optional[List[str]] = None,
        column_map: Optional[Dict[str, str]] = None
    ) -> pd.DataFrame:
        """
        Fetch a page and return one cleaned table from it.

        Parameters
        ----------
        url : str
            Page address
        index : int
            Position of the table among all matches
        selector : str, optional
            CSS or XPath expression narrowing the candidate tables
        numeric_columns : list, optional
            Columns to coerce to numbers; detected automatically when None
        column_map : dict, optional
            Renames applied after numeric coercion

        Returns
        -------
        pd.DataFrame
            The cleaned table
        """
        html = self.fetch_page(url)
        frame = select_table(html, index=index, selector=selector)
        frame = clean_numeric(frame, columns=numeric_columns)
        if column_map:
            frame = rename_columns(frame, column_map)
        self.logger.info(f"Extracted table with {len(frame)} rows and {len(frame.columns)} columns")
        return frame


def _element_tables(element: Tag) -> List[Tag]:
    """A matched table, or the tables nested inside a matched container."""
    if element.name == "table":
        return [element]
    return element.find_all("table")


def find_tables(html: str, selector: Optional[str] = None) -> List[Tag]:
    """
    Locate table elements in a document.

    Without a selector every table is returned in document order. CSS
    selectors are evaluated by BeautifulSoup, XPath expressions by lxml.
    """
    if not html or not html.strip():
        return []

    if selector is None:
        return BeautifulSoup(html, 'html.parser').find_all('table')

    if is_xpath(selector):
        matches = lxml_html.fromstring(html).xpath(selector)
        elements = []
        for match in matches:
            if not hasattr(match, 'tag'):
                # Text and attribute results carry no markup
                continue
            fragment = BeautifulSoup(lxml_html.tostring(match, encoding='unicode'), 'html.parser')
            root = fragment.find(True)
            if root is not None:
                elements.append(root)
    else:
        elements = BeautifulSoup(html, 'html.parser').select(selector)

    tables = []
    for element in elements:
        tables.extend(_element_tables(element))
    return tables


def _own_rows(table: Tag) -> List[Tag]:
    return [tr for tr in table.find_all('tr') if tr.find_parent('table') is table]


def _unique_headers(headers: List[str], width: int) -> List[str]:
    names = []
    seen: Dict[str, int] = {}
    for position in range(width):
        name = headers[position] if position < len(headers) else ''
        name = name or f"column_{position}"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 1
        names.append(name)
    return names


def parse_table(table: Tag) -> pd.DataFrame:
    """
    Convert a table element into a DataFrame of stripped strings.

    The header comes from ``<thead>`` when present, otherwise from a
    leading row made only of ``<th>`` cells. Rows without ``<td>`` cells
    are skipped and short rows are padded with missing values.
    """
    rows = _own_rows(table)

    header_row = None
    if table.thead is not None and table.thead.find_parent('table') is table:
        header_row = table.thead.find('tr')
    elif rows and rows[0].find('th', recursive=False) and not rows[0].find('td', recursive=False):
        header_row = rows[0]

    headers = []
    if header_row is not None:
        headers = [cell.get_text(' ', strip=True) for cell in header_row.find_all(['th', 'td'], recursive=False)]

    records = []
    for row in rows:
        if row is header_row or not row.find('td', recursive=False):
            continue
        records.append([cell.get_text(' ', strip=True) for cell in row.find_all(['td', 'th'], recursive=False)])

    width = max([len(headers)] + [len(record) for record in records])
    columns = _unique_headers(headers, width)
    padded = [record + [None] * (width - len(record)) for record in records]

    return pd.DataFrame(padded, columns=columns)


def parse_tables(html: str) -> List[pd.DataFrame]:
    """Parse every table in the document."""
    return [parse_table(table) for table in find_tables(html)]


def select_table(html: str, index: int = 0, selector: Optional[str] = None) -> pd.DataFrame:
    """
    Pick one table from a document and parse it.

    Raises
    ------
    TableNotFoundError
        If nothing matches or ``index`` is out of range
    """
    tables = find_tables(html, selector)
    target = selector or "table"

    if not tables:
        raise TableNotFoundError(f"No table matches {target!r}")

    if selector is not None and len(tables) > 1:
        logger.warning(f"Selector {selector!r} matched {len(tables)} tables, using position {index}")

    try:
        table = tables[index]
    except IndexError:
        raise TableNotFoundError(
            f"Table position {index} out of range, {len(tables)} tables match {target!r}"
        ) from None

    return parse_table(table)


def _clean_series(series: pd.Series) -> pd.Series:
    text = series.astype(str)
    text = text.str.replace(FOOTNOTE_PATTERN, '', regex=True)
    text = text.str.replace(FORMATTING_PATTERN, '', regex=True)
    text = text.str.replace('−', '-', regex=False)
    return pd.to_numeric(text, errors='coerce')


def _looks_numeric(series: pd.Series, threshold: float = 0.5) -> bool:
    present = series.dropna().astype(str).str.strip()
    present = present[present != '']
    if present.empty:
        return False
    converted = _clean_series(present)
    return converted.notna().mean() >= threshold


def clean_numeric(
    frame: pd.DataFrame,
    columns: Optional[List[str]] = None
) -> pd.DataFrame:
    """
    Coerce formatted text columns to numbers.

    Footnote markers, thousands separators, percent and plus signs are
    stripped before conversion. Cells that still fail to parse become NaN.

    Parameters
    ----------
    frame : pd.DataFrame
        Table to clean (not modified)
    columns : list, optional
        Columns to convert; when None, every column whose values are
        mostly numeric after stripping is converted

    Returns
    -------
    pd.DataFrame
        A copy with the selected columns converted
    """
    cleaned = frame.copy()

    if columns is None:
        columns = [column for column in cleaned.columns if _looks_numeric(cleaned[column])]

    for column in columns:
        if column not in cleaned.columns:
            logger.warning(f"Numeric column {column!r} not in table")
            continue
        before = cleaned[column].notna().sum()
        cleaned[column] = _clean_series(cleaned[column])
        lost = before - cleaned[column].notna().sum()
        if lost:
            logger.debug(f"{lost} cells in {column!r} could not be converted")

    return cleaned


def rename_columns(frame: pd.DataFrame, column_map: Dict[str, str]) -> pd.DataFrame:
    """Rename columns, logging any mapping whose source column is absent."""
    missing = [column for column in column_map if column not in frame.columns]
    if missing:
        logger.warning(f"Columns not found for renaming: {missing}")
    return frame.rename(columns=column_map)


def scrape_constituency_names(
    scraper: TableScraper,
    url: str,
    column: Union[str, int],
    index: int = 0,
    selector: Optional[str] = None
) -> List[str]:
    """
    Read the list of query terms from a static table.

    Parameters
    ----------
    scraper : TableScraper
        Fetcher to use
    url : str
        Page containing the constituency table
    column : str or int
        Column name, or position when an int
    index, selector
        Table selection, as for ``select_table``

    Returns
    -------
    list of str
        Unique non-empty names in page order
    """
    frame = select_table(scraper.fetch_page(url), index=index, selector=selector)
    values = frame.iloc[:, column] if isinstance(column, int) else frame[column]

    names = []
    for value in values.dropna():
        name = FOOTNOTE_PATTERN.sub('', str(value)).strip()
        if name and name not in names:
            names.append(name)

    logger.info(f"Found {len(names)} constituency names")
    return names
