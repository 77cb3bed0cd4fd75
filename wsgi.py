#!/usr/bin/env python3
"""WSGI entry point, e.g. ``gunicorn wsgi:application``."""

from resume_analyzer.app import create_app

application = create_app()
