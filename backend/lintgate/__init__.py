"""
Lintgate Backend: Application Package
======================================

What: HTTP gateway in front of PHP_CodeSniffer.
How:  Every request flows through an ordered middleware pipeline before it
      reaches a route handler:

    ┌──────────────────────────────────────────────┐
    │  Request ID → Access Log                     │  ← correlation, timing
    ├──────────────────────────────────────────────┤
    │  Security (CORS, rate limit, headers)        │  ← transport policy
    ├──────────────────────────────────────────────┤
    │  Auth (API keys, scopes)                     │  ← identity
    ├──────────────────────────────────────────────┤
    │  Routes → Services (analysis, cache, keys)   │  ← business logic
    └──────────────────────────────────────────────┘

    Shared mutable state lives in exactly three places: the credential
    store snapshot, the rate limiter's window tables, and the on-disk
    result cache.
"""

__version__ = "1.0.0"
