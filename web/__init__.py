"""Flask application serving the frontend."""
