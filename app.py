#!/usr/bin/env python3
"""Development entry point: ``python app.py`` or ``flask --app app run``."""

import os

from resume_analyzer.app import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=os.getenv("FLASK_DEBUG", "1") == "1", host="127.0.0.1", port=int(os.getenv("PORT", "5000")))
