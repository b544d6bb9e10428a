"""Memoized access to the process environment of the host build pipeline."""
from __future__ import annotations

from typing import Dict, List, Mapping
import os

from .errors import MissingEnvironmentError


class EnvironmentReader:
    """Read-through cache over an environment mapping.

    Every variable is looked up at most once; the first lookup of each name is
    echoed to stdout as ``NAME = value`` so that the host pipeline's log shows
    exactly which inputs influenced the build. The environment is treated as
    read-only, so cached entries are never invalidated.
    """

    def __init__(self, env: Mapping[str, str] | None = None, *, echo: bool = True) -> None:
        self._env = dict(env) if env is not None else dict(os.environ)
        self._echo = echo
        self._cache: Dict[str, str | None] = {}

    def get(self, name: str) -> str | None:
        if name in self._cache:
            return self._cache[name]
        value = self._env.get(name)
        if self._echo:
            print(f"{name} = {value!r}")
        self._cache[name] = value
        return value

    def require(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise MissingEnvironmentError(name)
        return value

    def get_for_target(self, base: str, *, target: str, host: str) -> str | None:
        """Resolve ``base`` through the target-specific lookup chain.

        ``<VAR>_<target>``, ``<VAR>_<target_with_underscores>``,
        ``HOST_<VAR>`` or ``TARGET_<VAR>``, then ``<VAR>``.
        """

        for candidate in self.candidate_names(base, target=target, host=host):
            value = self.get(candidate)
            if value is not None:
                return value
        return None

    @staticmethod
    def candidate_names(base: str, *, target: str, host: str) -> List[str]:
        kind = "HOST" if host == target else "TARGET"
        target_u = target.replace("-", "_")
        return [
            f"{base}_{target}",
            f"{base}_{target_u}",
            f"{kind}_{base}",
            base,
        ]


__all__ = ["EnvironmentReader"]
