from flask import Flask
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from models import db
from assistant.advisor import FinanceAdvisor
from assistant.currency import FixedRateSource
from assistant.routes import assistant_bp
from auth.routes import auth_bp
from budgets.routes import budgets_bp
from expenses.routes import expenses_bp
from notifications.routes import notifications_bp
from config import Config
from errors import register_error_handlers, register_jwt_handlers
from logging_setup import configure_logging


def create_app(config_class=Config, advisor=None, rate_source=None, **overrides):
    """
    advisor / rate_source are built from config unless given, so tests and
    alternative deployments can inject their own.
    """
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.config.update(overrides)

    configure_logging(app.config["LOG_LEVEL"], app.config["LOG_JSON"])

    CORS(app, supports_credentials=True)

    db.init_app(app)
    with app.app_context():
        # models must be imported before create_all
        import models.user_model  # noqa: F401
        import models.budget_model  # noqa: F401
        import models.expense_model  # noqa: F401
        import models.notification_model  # noqa: F401

        db.create_all()

    jwt = JWTManager(app)
    register_jwt_handlers(jwt)
    register_error_handlers(app)

    app.extensions["finance_advisor"] = advisor or FinanceAdvisor.from_config(app.config)
    app.extensions["rate_source"] = rate_source or FixedRateSource.from_config(app.config)

    app.register_blueprint(auth_bp)
    app.register_blueprint(budgets_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(assistant_bp)

    return app


if __name__ == "__main__":
    create_app().run(debug=Config.DEBUG)
