"""
Runtime defaults, overridable through environment variables.

    PROJECT_INDEXER_CACHE_DIR      cache directory (default: .cache)
    PROJECT_INDEXER_CACHE_TTL_MS   snapshot TTL in ms (default: 24h)
    PROJECT_INDEXER_BATCH_SIZE     files extracted concurrently per batch (default: 50)
"""

import os

CACHE_DIR = os.environ.get("PROJECT_INDEXER_CACHE_DIR", ".cache")
CACHE_TTL_MS = int(os.environ.get("PROJECT_INDEXER_CACHE_TTL_MS", str(1000 * 60 * 60 * 24)))
BATCH_SIZE = max(1, int(os.environ.get("PROJECT_INDEXER_BATCH_SIZE", "50")))

# Log progress every N batches
PROGRESS_LOG_INTERVAL = 5

# Analysis defaults used when the caller passes no patterns
DEFAULT_INCLUDE_PATTERNS = ["**/*.ts", "**/*.js", "**/*.json"]
DEFAULT_EXCLUDE_PATTERNS = ["node_modules/**", "dist/**", "**/*.d.ts"]

# Extensions the TypeScript scanner extracts symbols from
SCANNABLE_EXTENSIONS = [".ts", ".tsx", ".js", ".jsx", ".mjs"]

# Result caps applied by the tool handlers
MAX_SEARCH_RESULTS = 50
MAX_USAGE_RESULTS = 100
MAX_DEPENDENCY_DEPTH = 10
