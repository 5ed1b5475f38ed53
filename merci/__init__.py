from flask import Flask, jsonify
from .config import Config
from .extensions import db, jwt, cors, migrate
from .utils.logger import set_level

def register_error_handlers(app):
    @app.errorhandler(ValueError)
    def handle_value_error(e):
        r = jsonify({"status": False, "message": str(e), "data": None})
        r.status_code = 422
        return r

def create_app(test_config=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    Config.init_app(app)
    if test_config:
        app.config.update(test_config)
    Config.check(app.config)

    set_level(app.config["LOG_LEVEL"])

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})
    migrate.init_app(app, db)

    # Register blueprints
    from .auth import bp as auth_bp; app.register_blueprint(auth_bp)
    from .campaign import bp as campaign_bp; app.register_blueprint(campaign_bp)
    from .checkout import bp as checkout_bp; app.register_blueprint(checkout_bp)
    from .template import bp as template_bp; app.register_blueprint(template_bp)
    from .webhook import bp as webhook_bp; app.register_blueprint(webhook_bp)

    register_error_handlers(app)

    from .cli import register_cli
    register_cli(app)

    @app.get("/")
    def health():
        return jsonify(ok=True, msg="API running")

    with app.app_context():
        from . import model  # noqa: F401
        db.create_all()

    return app
