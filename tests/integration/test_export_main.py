"""Integration tests for running a whole export job from a config file."""

import os
import shutil
import sys
import tempfile
import unittest

import pytest

import witexport_main

pytestmark = pytest.mark.skipif(
    sys.platform == 'win32', reason="Commands assume a POSIX shell"
)


class TestExportMain(unittest.TestCase):
    """Test the entry point end to end with stand-in export commands."""

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = tempfile.mkdtemp()
        self.work_dir = os.path.join(self.test_dir, 'work')
        self.config_path = os.path.join(self.test_dir, 'export.yaml')

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.test_dir)

    def _write_config(self, steps):
        with open(self.config_path, 'w', encoding='utf-8') as f:
            f.write(
                f'''
working_directory: {self.work_dir}
variables:
  project: Fabrikam
  checkout: repo
runner:
  poll_interval_seconds: 0.05
  timeout_minutes: 0.5
steps:
{steps}
'''
            )

    def test_successful_job(self):
        """Test every step runs and writes its artifact."""
        self._write_config(
            '''  - name: prepare
    command: mkdir -p {checkout}/WorkItemTypes
  - name: export-bug
    command: echo "<WITD name='Bug' project='{project}'/>" > {checkout}/WorkItemTypes/Bug.xml
  - name: export-categories
    command: echo "<CATEGORIES/>" > {checkout}/categories.xml
'''
        )

        exit_code = witexport_main.main(['--config', self.config_path])

        self.assertEqual(exit_code, 0)
        bug = os.path.join(self.work_dir, 'repo', 'WorkItemTypes', 'Bug.xml')
        with open(bug, 'r', encoding='utf-8') as f:
            self.assertIn("project='Fabrikam'", f.read())
        self.assertTrue(
            os.path.isfile(os.path.join(self.work_dir, 'repo', 'categories.xml'))
        )

    def test_failed_step_stops_job(self):
        """Test a failing step skips the rest and fails the run."""
        self._write_config(
            '''  - name: export
    command: exit 1
  - name: marker
    command: touch marker
'''
        )

        exit_code = witexport_main.main(['--config', self.config_path])

        self.assertEqual(exit_code, 1)
        self.assertFalse(os.path.exists(os.path.join(self.work_dir, 'marker')))

    def test_working_directory_override(self):
        """Test the command line working directory is used."""
        override = os.path.join(self.test_dir, 'override')
        self._write_config(
            '''  - name: marker
    command: touch marker
'''
        )

        exit_code = witexport_main.main([
            '--config', self.config_path, '--working-directory', override,
            '--log-level', 'DEBUG'
        ])

        self.assertEqual(exit_code, 0)
        self.assertTrue(os.path.isfile(os.path.join(override, 'marker')))

    def test_unusable_config_directory_with_override(self):
        """Test a valid override wins over a config directory that cannot exist."""
        blocker = os.path.join(self.test_dir, 'blocker')
        with open(blocker, 'w', encoding='utf-8') as f:
            f.write('not a directory')
        self.work_dir = os.path.join(blocker, 'work')
        override = os.path.join(self.test_dir, 'ok')
        self._write_config(
            '''  - name: marker
    command: touch marker
'''
        )

        exit_code = witexport_main.main([
            '--config', self.config_path, '--working-directory', override
        ])

        self.assertEqual(exit_code, 0)
        self.assertTrue(os.path.isfile(os.path.join(override, 'marker')))

    def test_unusable_working_directory(self):
        """Test a working directory that cannot be created fails cleanly."""
        blocker = os.path.join(self.test_dir, 'blocker')
        with open(blocker, 'w', encoding='utf-8') as f:
            f.write('not a directory')
        self.work_dir = os.path.join(blocker, 'work')
        self._write_config(
            '''  - name: marker
    command: touch marker
'''
        )

        self.assertEqual(witexport_main.main(['--config', self.config_path]), 1)

    def test_missing_config(self):
        """Test a missing config file fails cleanly."""
        exit_code = witexport_main.main(
            ['--config', os.path.join(self.test_dir, 'missing.yaml')]
        )
        self.assertEqual(exit_code, 1)

    def test_invalid_config(self):
        """Test an invalid config file fails cleanly."""
        self._write_config('')
        self.assertEqual(witexport_main.main(['--config', self.config_path]), 1)


if __name__ == '__main__':
    unittest.main()
