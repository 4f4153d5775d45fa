from flask import Flask, jsonify
from unilib.config import Config
from unilib.extensions import db, migrate, jwt

from unilib.db_objects import ensure_db_objects


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    # 1) db init (needed for db.engine / db.session)
    db.init_app(app)

    # 2) models must be imported before create_all / migrations see them
    from unilib.models import university, user, book, loan, notification  # noqa: F401

    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            db.create_all()

    # 3) storage-level overbooking guard (trigger), after the tables exist
    if app.config.get("ENSURE_DB_OBJECTS"):
        ensure_db_objects(app)

    # 4) other extensions
    migrate.init_app(app, db)
    jwt.init_app(app)

    # 5) API blueprints
    from unilib.controllers.loan_controller import loan_bp
    from unilib.controllers.student_controller import student_bp
    from unilib.controllers.admin_controller import admin_bp
    from unilib.controllers.university_controller import university_bp
    app.register_blueprint(loan_bp, url_prefix="/api/loans")
    app.register_blueprint(student_bp, url_prefix="/api/student")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(university_bp, url_prefix="/api/university")

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    app.logger.info("[app] unilib started.")
    return app
