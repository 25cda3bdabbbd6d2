"""
Redirect Fixer - Source Package

Modules:
- config: Configuration loading and validation
- models: Requests, results and batch report records
- url_validator: URL normalization and absolute-URL checks
- host_rewriter: Staging/production host rewriting
- http_client: HEAD requests with redirect following disabled
- content_lookup: Slug-based fallback lookup against a content store
- wxr_source: WordPress export reader (documents + content store)
- link_extractor: Anchor href extraction from HTML bodies
- redirect_resolver: Redirect chain resolution and status-code policy
- batch_runner: Batch resolution over documents or delimited lists
- output_formatter: Report rendering (yaml, json, csv, search-replace, table)
- cli: Command line entry point
"""

__version__ = "0.1.0"
