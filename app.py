import logging

from flask import Flask
from config import Config
from extensions import db, login_manager


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    # init extensions
    db.init_app(app)
    login_manager.init_app(app)

    # models register the user_loader and their tables on import
    import models  # noqa: F401

    # import and register blueprints
    from routes import main_bp

    app.register_blueprint(main_bp)

    return app


app = create_app()

if __name__ == "__main__":
    app.run(debug=True)
