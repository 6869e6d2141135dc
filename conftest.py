"""Global pytest configuration."""

import os

# Fail loudly on invariant violations in every test-built plan
os.environ.setdefault("STRICT_INVARIANTS", "true")
