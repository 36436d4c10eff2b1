"""Flask application factory."""

import logging

from flask import Flask
from flask_cors import CORS

from flowcraft.config import load_config
from flowcraft.workspace import Workspace


def create_app(config: dict = None, workspace: Workspace = None):
    """Create and configure the Flask application.

    ``config`` overrides any loaded configuration; ``workspace`` replaces the
    one built from configuration.
    """
    app = Flask(__name__)
    load_config(app, config)

    logging.basicConfig(level=app.config["LOG_LEVEL"])
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Enable CORS for frontend
    CORS(app, resources={
        r"/api/*": {
            "origins": app.config["CORS_ORIGINS"],
            "methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "X-FlowCraft-User"]
        }
    })

    if workspace is None:
        workspace = Workspace.from_config(app.config)
    app.extensions["flowcraft"] = workspace

    if app.config["RESTORE_SELECTION"]:
        restored = workspace.coordinator.restore_selection()
        if restored:
            app.logger.info(f"Restored team selection {restored}")

    # Register blueprints
    from flowcraft.api import analytics, issues, projects, sprints, team, teams
    app.register_blueprint(team.bp)
    app.register_blueprint(issues.bp)
    app.register_blueprint(sprints.bp)
    app.register_blueprint(projects.bp)
    app.register_blueprint(analytics.bp)
    app.register_blueprint(teams.bp)

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok"}

    return app
