"""Global pytest configuration."""

import os

# Tests run against the in-memory store and limiter unless a suite opts in
os.environ.pop("DATABASE_URL", None)
os.environ.pop("REDIS_URL", None)
