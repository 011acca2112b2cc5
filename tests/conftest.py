"""Pytest bootstrap for local source imports and Django settings.

The ``pytest`` console script can run with a sys.path that excludes the
repository root. Ensure ``objects_app`` and ``git_dav`` resolve locally,
then configure Django once so the view tests can use the test client.
"""

import os
import sys
from pathlib import Path

import django
from django.test.utils import setup_test_environment

PROJECT_ROOT = Path(__file__).resolve().parent.parent
PROJECT_ROOT_STR = str(PROJECT_ROOT)

if PROJECT_ROOT_STR not in sys.path:
    sys.path.insert(0, PROJECT_ROOT_STR)

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "django_core.settings")
django.setup()
setup_test_environment()
