"""Server configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Optional

from .resolver import DEFAULT_MAX_DEPTH

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerConfig:
    compiler_path: str = 'cnd'
    max_import_depth: int = DEFAULT_MAX_DEPTH
    compiler_timeout: float = 10.0

    def with_options(self, options: Optional[dict[str, Any]]) -> ServerConfig:
        """Apply LSP initializationOptions on top of this config.

        Recognised keys: compilerPath, maxImportDepth, compilerTimeout.
        Values of the wrong type are ignored.
        """
        if not isinstance(options, dict):
            return self
        changes: dict[str, Any] = {}

        compiler_path = options.get('compilerPath')
        if isinstance(compiler_path, str) and compiler_path:
            changes['compiler_path'] = compiler_path

        depth = options.get('maxImportDepth')
        if isinstance(depth, int) and not isinstance(depth, bool) and depth > 0:
            changes['max_import_depth'] = depth

        timeout = options.get('compilerTimeout')
        if (isinstance(timeout, (int, float))
                and not isinstance(timeout, bool) and timeout > 0):
            changes['compiler_timeout'] = float(timeout)

        for key in options.keys() - {
            'compilerPath', 'maxImportDepth', 'compilerTimeout',
        }:
            log.debug('Ignoring unknown option %s', key)
        return replace(self, **changes)
