import os

# Tests run against the in-memory backends unless a caller opts out explicitly.
os.environ.setdefault("ADVENT_USE_IN_MEMORY_BACKENDS", "true")
