"""
Blueprint registration for the tuition portal.

All blueprints are registered without URL prefixes; routes carry their full paths.
"""

from __future__ import annotations


def register_blueprints(app):
    from blueprints.core import bp as core_bp
    from blueprints.tutees import bp as tutees_bp
    from blueprints.bookings import bp as bookings_bp
    from blueprints.calendar import bp as calendar_bp
    from blueprints.learning_points import bp as learning_points_bp
    from blueprints.files import bp as files_bp
    from blueprints.notifications import bp as notifications_bp
    from blueprints.chat import bp as chat_bp
    from blueprints.components import bp as components_bp
    from blueprints.feedback import bp as feedback_bp
    from blueprints.messages import bp as messages_bp
    from blueprints.worksheets import bp as worksheets_bp
    from blueprints.reports import bp as reports_bp

    app.register_blueprint(core_bp)
    app.register_blueprint(tutees_bp)
    app.register_blueprint(bookings_bp)
    app.register_blueprint(calendar_bp)
    app.register_blueprint(learning_points_bp)
    app.register_blueprint(files_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(chat_bp)
    app.register_blueprint(components_bp)
    app.register_blueprint(feedback_bp)
    app.register_blueprint(messages_bp)
    app.register_blueprint(worksheets_bp)
    app.register_blueprint(reports_bp)
