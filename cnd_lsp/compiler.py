"""Run the external `cnd` compiler for diagnostics and formatting."""

from __future__ import annotations

import logging
import os
import re
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Optional

log = logging.getLogger(__name__)

ANSI_ESCAPE_RE = re.compile(r'\x1B\[[0-9;]*[a-zA-Z]')
# GCC style: file:line:col: error: message
DIAGNOSTIC_RE = re.compile(
    r'^(.+):(\d+):(\d+):\s+(error|warning):\s+(.+)$'
)


@dataclass
class CompilerDiagnostic:
    file: str
    line: int  # 0-indexed
    column: int  # 0-indexed
    severity: str  # 'error' or 'warning'
    message: str


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub('', text)


def parse_compiler_output(output: str) -> list[CompilerDiagnostic]:
    """Extract diagnostics from compiler output.

    Lines that do not look like `file:line:col: error: msg` are ignored.
    Line and column numbers are converted from 1-based to 0-based.
    """
    diagnostics = []
    for line in strip_ansi(output).split('\n'):
        m = DIAGNOSTIC_RE.match(line.strip())
        if m is None:
            continue
        diagnostics.append(CompilerDiagnostic(
            file=m.group(1),
            line=max(int(m.group(2)) - 1, 0),
            column=max(int(m.group(3)) - 1, 0),
            severity=m.group(4),
            message=m.group(5),
        ))
    return diagnostics


class Compiler:
    """Thin wrapper around the compiler executable."""

    def __init__(self, path: str = 'cnd', timeout: float = 10.0) -> None:
        self.path = path
        self.timeout = timeout

    def _run(self, args: list[str]) -> Optional[subprocess.CompletedProcess]:
        cmd = [self.path, *args]
        log.info('Running %s', ' '.join(cmd))
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            log.error('%s timed out after %.1fs', self.path, self.timeout)
        except OSError as e:
            log.error('Cannot run %s: %s', self.path, e)
        return None

    def check(self, filepath: str) -> list[CompilerDiagnostic]:
        """Compile `filepath` and return diagnostics reported for it."""
        filepath = os.path.abspath(filepath)
        with tempfile.TemporaryDirectory(prefix='cnd-lsp-') as tmpdir:
            out = os.path.join(tmpdir, 'out.il')
            result = self._run(['compile', filepath, out])
        if result is None:
            return []
        if result.returncode != 0:
            log.info('Compiler returned error code %d', result.returncode)
        if result.stderr:
            log.debug('Compiler stderr: %s', result.stderr)

        diagnostics = []
        for diag in parse_compiler_output(result.stdout):
            diag_path = diag.file
            if not os.path.isabs(diag_path):
                diag_path = os.path.join(os.path.dirname(filepath), diag_path)
            if os.path.normpath(diag_path) != filepath:
                log.debug('Ignoring diagnostic for %s', diag.file)
                continue
            diagnostics.append(diag)
        return diagnostics

    def format(self, filepath: str) -> Optional[str]:
        """Return the formatted text of `filepath`, or None on failure."""
        result = self._run(['fmt', os.path.abspath(filepath)])
        if result is None:
            return None
        if result.returncode != 0:
            log.error(
                'Formatting %s failed (%d): %s',
                filepath, result.returncode, strip_ansi(result.stderr).strip(),
            )
            return None
        return result.stdout
