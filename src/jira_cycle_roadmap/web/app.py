"""Flask application factory for the JIRA Cycle Roadmap API."""

from flask import Flask


def create_app() -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    app.config["SECRET_KEY"] = "jira-cycle-roadmap-local-dev"

    from jira_cycle_roadmap.web.routes import bp
    app.register_blueprint(bp)

    return app
