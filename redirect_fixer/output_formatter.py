"""
1.0 Output Formatter
Renders batch records as yaml, json, csv, search-replace commands or a table.

Redirect records carry final_url; broken-link records never do, in any format.
"""

import csv
import json
import logging
from typing import List, Optional, Sequence

import pandas as pd
import yaml

from redirect_fixer.models import BatchRecord

logger = logging.getLogger(__name__)

FORMATS = ("yaml", "json", "csv", "search-replace", "table")
DEFAULT_FORMAT = "yaml"
SEARCH_REPLACE_TEMPLATE = 'wp search-replace "{original}" "{final}" --dry-run'
NO_RESULTS = "No results to display."

# 1.1 CSV header labels, keyed by record field
CSV_LABELS = {
    "original_url": "Original URL",
    "final_url": "Final URL",
    "status_code": "Status Code",
    "post_id": "Post ID",
    "post_title": "Post Title",
    "permalink": "Permalink",
}


def format_records(
    records: Sequence[BatchRecord],
    fmt: str = DEFAULT_FORMAT,
    is_redirect: Optional[bool] = None,
    replace_template: str = SEARCH_REPLACE_TEMPLATE,
) -> str:
    """
    2.0 Render records in the requested format.

    Args:
        records: Records of one bucket (all redirects or all broken links)
        fmt: yaml, json, csv, search-replace or table; anything else is yaml
        is_redirect: Bucket kind. Derived from the first record's final_url when None
        replace_template: Command template for search-replace ({original}, {final})

    Returns:
        The rendered text, without a trailing newline
    """
    if not records:
        return NO_RESULTS

    if is_redirect is None:
        is_redirect = bool(records[0].final_url)

    rows = [r.to_dict(include_final_url=is_redirect) for r in records]

    if fmt not in FORMATS:
        logger.warning(f"Unknown output format '{fmt}', using {DEFAULT_FORMAT}")
        fmt = DEFAULT_FORMAT

    if fmt == "json":
        return json.dumps(rows, indent=4, ensure_ascii=False)
    if fmt == "csv":
        return _to_csv(rows)
    if fmt == "search-replace":
        return _to_search_replace(records, is_redirect, replace_template)
    if fmt == "table":
        return _to_table(records, is_redirect)
    return yaml.safe_dump(rows, sort_keys=False, allow_unicode=True, default_flow_style=False).rstrip("\n")


def _to_csv(rows: List[dict]) -> str:
    # All records of a bucket share the same keys (provenance or not)
    df = pd.DataFrame(rows)
    header = ",".join(CSV_LABELS[c] for c in df.columns)
    body = df.to_csv(index=False, header=False, quoting=csv.QUOTE_ALL, lineterminator="\n")
    return f"{header}\n{body}".rstrip("\n")


def _to_search_replace(records: Sequence[BatchRecord], is_redirect: bool, template: str) -> str:
    if not is_redirect:
        return "Search-replace format only available for redirects."
    return "\n".join(template.format(original=r.original_url, final=r.final_url) for r in records)


def _to_table(records: Sequence[BatchRecord], is_redirect: bool) -> str:
    lines = ["Found Redirects:" if is_redirect else "Broken Links:", "=" * 80]
    for i, record in enumerate(records, start=1):
        lines.append(f"{i}. {record.original_url}")
        if is_redirect:
            lines.append(f"   → {record.final_url}")
        else:
            lines.append(f"   (Status: {record.status_code})")
        if record.has_source:
            lines.append(f"   Post: {record.source_title or ''} (ID: {record.source_document_id})")
            lines.append(f"   URL: {record.source_permalink or ''}")
        lines.append("")
    return "\n".join(lines).rstrip("\n")
