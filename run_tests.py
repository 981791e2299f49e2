#!/usr/bin/env python
"""
Test runner script for the full suite
Usage: python run_tests.py [app ...]
"""
import os
import sys
import django
from django.conf import settings
from django.test.utils import get_runner

APPS = [
    'alumnihub.core',
    'alumnihub.alumni',
    'alumnihub.communities',
    'alumnihub.events',
    'alumnihub.donations',
    'alumnihub.mentoring',
    'alumnihub.reports',
]

if __name__ == "__main__":
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'alumnihub.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner()
    failures = test_runner.run_tests(sys.argv[1:] or APPS)
    sys.exit(bool(failures))
