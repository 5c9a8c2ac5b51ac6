# Services package init
"""
Lintgate Backend: Services Layer
=================================

What:  Everything between the HTTP layer and the phpcs binary.

Service Inventory:
    - AnalysisEngine (abstract): interface for code analyzers
    - PhpcsEngine: runs PHP_CodeSniffer as a subprocess
    - AnalysisService: validate → fingerprint → cache → engine workflow
    - ResultCache: file-backed cache of analysis reports
    - CredentialStore: API key records in a JSON file
    - Authenticator: credential extraction and scope decisions
    - RateLimiter: fixed-window request counting per client

Services are built once per app in `lintgate.dependencies.build_services`
and reach routes through `Depends(get_services)`.
"""
