"""
Pytest bootstrap for the FanFrame tests (no pytest-django).

The suite is made of Django `TestCase` / `SimpleTestCase` classes, so here we:
- point `DJANGO_SETTINGS_MODULE` at `config.settings`
- keep job notifications in-process, whatever `REDIS_URL` the shell exports
- call `django.setup()`
- create/teardown the Django test databases around the session
"""

import os

import django
from django.test.utils import (
    setup_databases,
    setup_test_environment,
    teardown_databases,
    teardown_test_environment,
)


_db_cfg = None


def pytest_configure():
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
    os.environ.setdefault("NOTIFIER_URL", "local://")
    django.setup()


def pytest_sessionstart(session):
    global _db_cfg
    setup_test_environment()
    _db_cfg = setup_databases(verbosity=0, interactive=False, keepdb=False)


def pytest_sessionfinish(session, exitstatus):
    global _db_cfg
    if _db_cfg:
        teardown_databases(_db_cfg, verbosity=0)
        _db_cfg = None
    teardown_test_environment()
