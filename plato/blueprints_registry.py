import logging

from .extensions import csrf

logger = logging.getLogger(__name__)


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    from .blueprints.cron import cron_bp
    from .blueprints.production import production_api_bp
    from .blueprints.wholesale import wholesale_api_bp

    # JSON-only surfaces; no form posts
    for blueprint in (production_api_bp, wholesale_api_bp, cron_bp):
        csrf.exempt(blueprint)
        app.register_blueprint(blueprint)
        logger.debug("Registered blueprint %s at %s", blueprint.name, blueprint.url_prefix)
