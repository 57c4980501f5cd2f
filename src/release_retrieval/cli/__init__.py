"""Release retrieval CLI module.

Provides command-line tools for refreshing external release data files.

Usage:
    python -m release_retrieval.cli fetch --sources sources.json
    python -m release_retrieval.cli fetch --sources sources.json --only cosmic
    python -m release_retrieval.cli fetch --sources sources.json --log-dir logs
"""
