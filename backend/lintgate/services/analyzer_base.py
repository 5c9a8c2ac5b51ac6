"""
Lintgate Backend: Abstract Analysis Engine Interface
=====================================================

What:  The contract every static-analysis backend fulfils.
How:   Concrete engines inherit from AnalysisEngine; AnalysisService and the
       routes only ever talk to this interface.
Who:   PhpcsEngine in production, a fake engine in tests.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class AnalysisEngine(ABC):
    """
    Contract:
        - analyze() returns the engine's structured report as a dict
        - every engine-specific failure is wrapped in UpstreamFailureError
        - list_standards() and version() are cheap probes
    """

    @abstractmethod
    async def analyze(
        self,
        code: str,
        standard: str,
        php_version: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Run the engine over one source text.

        Args:
            code:         Source text, already size-checked.
            standard:     Sanitized ruleset name.
            php_version:  Sanitized version pin, or None.
            options:      Validated options keyed by engine flag name.

        Raises:
            UpstreamFailureError: the engine could not be run, timed out, or
                produced output that is not a report.
        """
        ...

    @abstractmethod
    async def list_standards(self) -> List[str]:
        """Installed rulesets. Raises UpstreamFailureError if the probe fails."""
        ...

    @abstractmethod
    async def version(self) -> str:
        """Engine version string, or "unknown". Never raises."""
        ...
