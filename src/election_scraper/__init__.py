"""
Election Scraper: extracting election results from web pages

A Python package for scraping election result tables, both from static
HTML pages and from JavaScript-rendered search forms driven through a
browser, and for plotting and regressing the resulting data.
"""

__version__ = "0.1.0"

from . import analysis, browser, config, data_structures, tables

__all__ = ["analysis", "browser", "config", "data_structures", "tables"]
