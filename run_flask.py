"""
Run the Flask app (document preview API at /preview).
Activate your venv first, then: python run_flask.py
"""
from app import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=True, port=5000, use_reloader=False)
