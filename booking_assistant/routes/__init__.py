def register_blueprints(app):
    """Register all route blueprints with the Flask app"""
    from .chat_routes import chat_bp

    app.register_blueprint(chat_bp)
