"""Tests for server configuration."""

import unittest

from cnd_lsp.config import ServerConfig
from cnd_lsp.resolver import DEFAULT_MAX_DEPTH


class TestServerConfig(unittest.TestCase):
    def test_defaults(self):
        config = ServerConfig()
        self.assertEqual(config.compiler_path, 'cnd')
        self.assertEqual(config.max_import_depth, DEFAULT_MAX_DEPTH)

    def test_options(self):
        config = ServerConfig().with_options({
            'compilerPath': '/opt/cnd/bin/cnd',
            'maxImportDepth': 8,
            'compilerTimeout': 3,
        })
        self.assertEqual(config.compiler_path, '/opt/cnd/bin/cnd')
        self.assertEqual(config.max_import_depth, 8)
        self.assertEqual(config.compiler_timeout, 3.0)

    def test_bad_values_are_ignored(self):
        base = ServerConfig(compiler_path='cndc')
        config = base.with_options({
            'compilerPath': '',
            'maxImportDepth': True,
            'compilerTimeout': -1,
            'somethingElse': 1,
        })
        self.assertEqual(config, base)

    def test_no_options(self):
        base = ServerConfig()
        self.assertIs(base.with_options(None), base)


if __name__ == '__main__':
    unittest.main()
