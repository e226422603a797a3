#!/usr/bin/env python
"""
Test runner script for the full DPMS suite
Usage: python Doc/run_tests.py
"""
import os
import sys
import django
from django.conf import settings
from django.test.utils import get_runner

if __name__ == "__main__":
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'dpms.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner()
    failures = test_runner.run_tests([
        'dpms.core',
        'dpms.locations',
        'dpms.parties',
        'dpms.catalog',
        'dpms.purchasing',
        'dpms.inventory',
        'dpms.quality',
        'dpms.reports',
    ])
    sys.exit(bool(failures))
