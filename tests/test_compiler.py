"""Tests for the external compiler wrapper."""

import os
import subprocess
import unittest
from unittest import mock

from cnd_lsp.compiler import Compiler, parse_compiler_output, strip_ansi


def _completed(stdout='', stderr='', returncode=0):
    return subprocess.CompletedProcess(
        args=[], returncode=returncode, stdout=stdout, stderr=stderr,
    )


class TestParseOutput(unittest.TestCase):
    def test_error_and_warning(self):
        diags = parse_compiler_output(
            'proto.cnd:3:5: error: unknown type Foo\n'
            'proto.cnd:10:1: warning: unused enum Mode\n'
        )
        self.assertEqual(len(diags), 2)
        self.assertEqual(diags[0].file, 'proto.cnd')
        self.assertEqual((diags[0].line, diags[0].column), (2, 4))
        self.assertEqual(diags[0].severity, 'error')
        self.assertEqual(diags[0].message, 'unknown type Foo')
        self.assertEqual(diags[1].severity, 'warning')

    def test_ansi_codes(self):
        raw = '\x1b[1mproto.cnd:1:2:\x1b[0m \x1b[31merror:\x1b[0m bad\n'
        self.assertEqual(strip_ansi(raw), 'proto.cnd:1:2: error: bad\n')
        diags = parse_compiler_output(raw)
        self.assertEqual(diags[0].message, 'bad')

    def test_noise_is_ignored(self):
        self.assertEqual(
            parse_compiler_output('Compiling...\n\nDone: 0 errors\n'), [],
        )


@mock.patch('cnd_lsp.compiler.subprocess.run')
class TestCompiler(unittest.TestCase):
    def test_check_filters_other_files(self, run):
        path = os.path.abspath('/work/main.cnd')
        run.return_value = _completed(
            stdout=(
                f'{path}:2:3: error: bad field\n'
                '/work/other.cnd:1:1: error: elsewhere\n'
                'main.cnd:4:1: warning: relative path\n'
            ),
            returncode=1,
        )
        diags = Compiler('cndc').check(path)
        self.assertEqual([d.message for d in diags],
                         ['bad field', 'relative path'])

        cmd = run.call_args[0][0]
        self.assertEqual(cmd[:3], ['cndc', 'compile', path])

    def test_check_missing_compiler(self, run):
        run.side_effect = FileNotFoundError('cnd')
        self.assertEqual(Compiler().check('/work/main.cnd'), [])

    def test_check_timeout(self, run):
        run.side_effect = subprocess.TimeoutExpired('cnd', 1.0)
        self.assertEqual(Compiler(timeout=1.0).check('/work/main.cnd'), [])

    def test_format(self, run):
        run.return_value = _completed(stdout='struct A {\n}\n')
        self.assertEqual(Compiler().format('/work/a.cnd'), 'struct A {\n}\n')
        self.assertEqual(
            run.call_args[0][0], ['cnd', 'fmt', os.path.abspath('/work/a.cnd')],
        )

    def test_format_failure(self, run):
        run.return_value = _completed(stderr='syntax error', returncode=2)
        self.assertIsNone(Compiler().format('/work/a.cnd'))

    def test_format_missing_compiler(self, run):
        run.side_effect = OSError('permission denied')
        self.assertIsNone(Compiler().format('/work/a.cnd'))


if __name__ == '__main__':
    unittest.main()
