"""Runtime: retry, rate limiting, logging and tracing."""
