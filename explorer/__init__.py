"""Explorer HTTP API for chainstats."""
