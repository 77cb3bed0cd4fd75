# run.py
import logging
import os

from resume_analyzer.app import create_app, db

logger = logging.getLogger(__name__)


def main() -> None:
    """Create tables if needed and serve on ``HOST``/``PORT`` (127.0.0.1:5000)."""
    app = create_app()
    with app.app_context():
        db.create_all()
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "5000"))
    logger.info("Starting resume analyzer on http://%s:%d", host, port)
    app.run(debug=False, host=host, port=port)


if __name__ == "__main__":
    main()
