import logging

from flask import Flask
from flask_cors import CORS

from gnb_transfer.extensions import db, migrate, jwt
from config import Config


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    app.logger.setLevel(level)
    logging.getLogger('gnb_transfer').setLevel(level)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    CORS(app, origins=app.config.get('CORS_ORIGINS', '*'))

    # Register Blueprints
    from gnb_transfer.api import api_bp
    from gnb_transfer.api.admin import admin_bp
    app.register_blueprint(api_bp)
    app.register_blueprint(admin_bp)

    from gnb_transfer.db_init.cli import register_commands
    register_commands(app)

    return app


def start_campaign_scheduler(app):
    """
    Start the hourly campaign scheduler for this process.

    Called by the entry point that serves requests, never by ``create_app``,
    so CLI commands and extra app instances do not each start a thread.
    Returns the running scheduler, or None when it is disabled.
    """
    if not app.config.get('CAMPAIGN_SCHEDULER_ENABLED') or app.testing:
        return None
    if 'campaign_scheduler' in app.extensions:
        return app.extensions['campaign_scheduler']

    from gnb_transfer.services.campaigns import CampaignScheduler
    scheduler = CampaignScheduler(app, interval=app.config['CAMPAIGN_SCHEDULER_INTERVAL'])
    scheduler.start()
    app.extensions['campaign_scheduler'] = scheduler
    return scheduler
