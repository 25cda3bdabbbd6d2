"""
1.0 Batch Runner
Drives the RedirectResolver over many inputs and aggregates a report.

Key features:
- Two sources: a document set (links harvested from bodies) or a
  delimited list (url, existing redirect hint)
- Sequential on purpose: one URL at a time, optional fixed delay between
  resolutions so the origin is not hammered
- offset/limit slicing of list inputs, early termination via cancel()
- Per-URL failures are recorded and the run continues

Usage:
    runner = BatchRunner(resolver, BatchConfig(target_host="example.com"))
    report = runner.run("redirects.csv")
"""

import logging
import os
import threading
import time
import warnings
from typing import Callable, Iterable, List, NamedTuple, Optional, Union

import pandas as pd

from redirect_fixer.config import BatchConfig
from redirect_fixer.errors import InputFileNotFoundError
from redirect_fixer.host_rewriter import process_url, rewrite_host
from redirect_fixer.link_extractor import extract_links
from redirect_fixer.models import (
    BROKEN_LINK_CODES,
    BatchRecord,
    BatchReport,
    Document,
    Outcome,
    ResolveRequest,
    ResolveResult,
)
from redirect_fixer.redirect_resolver import RedirectResolver
from redirect_fixer.url_validator import is_absolute

logger = logging.getLogger(__name__)

# 1.1 Report buckets
BUCKET_REDIRECTS = "redirects"
BUCKET_BROKEN = "broken_links"
BUCKET_ERRORS = "errors"


class DelimitedRow(NamedTuple):
    """One row of a delimited list: column 0 = URL, column 1 = existing redirect."""
    url: str
    existing: str = ""


def read_delimited_rows(path: str) -> List[DelimitedRow]:
    """
    2.0 Read a newline-delimited, comma-separated list.

    No header row. Quoted fields are honoured, columns after the second are
    ignored and rows with a blank first column are dropped.

    Raises:
        InputFileNotFoundError: the file does not exist
    """
    if not os.path.exists(path):
        raise InputFileNotFoundError(f"File {path} does not exist. Please check the path and try again.")

    try:
        # index_col=False: rows wider than two columns are truncated, short
        # rows are padded (pandas warns about the former)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            df = pd.read_csv(
                path,
                header=None,
                names=["url", "existing"],
                index_col=False,
                dtype=object,
                keep_default_na=False,
                skip_blank_lines=True,
                skipinitialspace=True,
                encoding="utf-8-sig",
                engine="python",
            )
    except pd.errors.EmptyDataError:
        logger.warning(f"List file {path} is empty")
        return []

    df = df.fillna("").astype(str)
    df["url"] = df["url"].str.strip()
    df["existing"] = df["existing"].str.strip()
    df = df[df["url"] != ""]

    return [DelimitedRow(row.url, row.existing) for row in df.itertuples(index=False)]


def classify(input_url: str, result: ResolveResult) -> Optional[str]:
    """
    3.0 Pick the report bucket for one resolution (None = skipped).

    - RESOLVED somewhere else than the input       -> redirects
    - BROKEN/TRANSIENT with 404/410/500/502/503/504 -> broken_links
    - INVALID/TRANSPORT_ERROR                       -> errors
    """
    if result.outcome is Outcome.RESOLVED and result.final_location != input_url:
        return BUCKET_REDIRECTS
    if result.outcome in (Outcome.BROKEN, Outcome.TRANSIENT) and result.status_code in BROKEN_LINK_CODES:
        return BUCKET_BROKEN
    if result.is_failure:
        return BUCKET_ERRORS
    return None


class BatchRunner:
    """
    4.0 BatchRunner Class

    Owns the BatchReport of a run. Not meant to be shared across threads,
    except for cancel(), which may be called from anywhere.
    """

    def __init__(
        self,
        resolver: RedirectResolver,
        config: Optional[BatchConfig] = None,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.resolver = resolver
        self.config = config or BatchConfig()
        self.logger = logger or logging.getLogger(__name__)
        self._sleep = sleep
        self._cancel_event = threading.Event()
        self._resolutions = 0

    # =========================================================================
    # 4.1 CONTROL
    # =========================================================================

    def cancel(self) -> None:
        """Stop the run before the next resolution (never mid-resolution)."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def run(
        self,
        source: Union[str, os.PathLike, Iterable[DelimitedRow], Iterable[Document]],
        config: Optional[BatchConfig] = None,
    ) -> BatchReport:
        """
        4.2 Run over a list file path, a sequence of DelimitedRow, or documents.

        A config given here replaces the one the runner was built with.
        """
        if config is not None:
            self.config = config

        if isinstance(source, (str, os.PathLike)):
            return self.run_rows(read_delimited_rows(os.fspath(source)))

        items = list(source)
        documents = [i for i in items if isinstance(i, Document)]
        if documents and len(documents) != len(items):
            raise ValueError("Cannot mix documents and list rows in one batch run")
        if documents:
            return self.run_documents(documents)
        return self.run_rows([i if isinstance(i, DelimitedRow) else DelimitedRow(*i) for i in items])

    # =========================================================================
    # 4.3 DELIMITED LISTS
    # =========================================================================

    def run_rows(self, rows: Iterable[DelimitedRow]) -> BatchReport:
        """
        Resolve each (url, existing) row after offset/limit slicing.

        Row URLs and hints are absolutized under target_host, then rewritten.
        """
        cfg = self.config
        report = BatchReport()

        rows = [r for r in rows if r.url and r.url.strip()]
        rows = rows[cfg.offset:]
        if cfg.limit:
            rows = rows[:cfg.limit]

        total = len(rows)
        self.logger.info(f"Processing {total} URLs from CSV with offset of {cfg.offset}")

        for count, row in enumerate(rows, start=1):
            url = process_url(row.url, cfg.home_host, cfg.target_host)
            existing = process_url(row.existing, cfg.home_host, cfg.target_host) if row.existing else None

            result = self._resolve(url, existing, label=f"[{count}/{total}]")
            if result is None:
                report.cancelled = True
                break

            report.processed += 1
            bucket = self._record(report, BatchRecord(
                original_url=url,
                final_url=result.final_location if result.outcome is Outcome.RESOLVED else "",
                status_code=result.status_code,
                error=result.error,
            ), url, result)

            if bucket in (BUCKET_REDIRECTS, BUCKET_BROKEN):
                report.found += 1
            else:
                report.skipped += 1

        return report

    # =========================================================================
    # 4.4 DOCUMENT SETS
    # =========================================================================

    def run_documents(self, documents: Iterable[Document], dry_run: bool = False) -> BatchReport:
        """
        Resolve every absolute link of every document body.

        found counts documents with at least one redirect or broken link,
        skipped counts the others (including documents without a body).
        With dry_run the links are only listed.
        """
        cfg = self.config
        report = BatchReport()

        for document in documents:
            if self.cancelled:
                report.cancelled = True
                break

            if not document.body:
                report.skipped += 1
                continue

            # Relative references resolve against the document itself: left alone
            links = [link for link in extract_links(document.body) if is_absolute(link)]

            if dry_run:
                self.logger.info(f"[dry-run] {document.id} {document.title}: {len(links)} links")
                for link in links:
                    self.logger.info(f"[dry-run]   {rewrite_host(link, cfg.home_host, cfg.target_host)}")
                report.skipped += 1
                continue

            has_findings = False
            for link in links:
                url = rewrite_host(link, cfg.home_host, cfg.target_host)

                result = self._resolve(url, None)
                if result is None:
                    report.cancelled = True
                    break

                report.processed += 1
                bucket = self._record(report, BatchRecord(
                    original_url=url,
                    final_url=result.final_location if result.outcome is Outcome.RESOLVED else "",
                    status_code=result.status_code,
                    source_document_id=document.id,
                    source_title=document.title,
                    source_permalink=document.permalink,
                    error=result.error,
                ), url, result)
                has_findings = has_findings or bucket in (BUCKET_REDIRECTS, BUCKET_BROKEN)

            if has_findings:
                report.found += 1
            else:
                report.skipped += 1

            if report.cancelled:
                break

        return report

    # =========================================================================
    # 4.5 HELPERS
    # =========================================================================

    def _resolve(self, url: str, existing: Optional[str], label: str = "") -> Optional[ResolveResult]:
        """Pace, then resolve one URL. Returns None when the run was cancelled."""
        if self.cancelled:
            self.logger.warning("Batch run cancelled, stopping before the next URL")
            return None

        # Fixed delay between resolutions, whatever the previous outcome was
        if self._resolutions and self.config.inter_request_delay_seconds:
            self._sleep(self.config.inter_request_delay_seconds)
            if self.cancelled:
                self.logger.warning("Batch run cancelled, stopping before the next URL")
                return None

        if label:
            self.logger.info(f"{label} {url}")

        self._resolutions += 1
        return self.resolver.resolve(ResolveRequest(
            target_url=url,
            existing_hint=existing or None,
            home_host=self.config.home_host,
            target_host=self.config.target_host,
            credentials=self.config.credentials,
        ))

    def _record(self, report: BatchReport, record: BatchRecord, url: str, result: ResolveResult) -> Optional[str]:
        bucket = classify(url, result)
        if bucket == BUCKET_REDIRECTS:
            report.redirects.append(record)
        elif bucket == BUCKET_BROKEN:
            report.broken_links.append(record)
        elif bucket == BUCKET_ERRORS:
            self.logger.error(f"Could not resolve {url}: {result.outcome.value} ({result.error})")
            report.errors.append(record)
        return bucket
