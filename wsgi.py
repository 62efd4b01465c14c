"""
WSGI entry point.

    flask --app wsgi run                              # development
    gunicorn "blindtest:create_app()" -w 4 -b 0.0.0.0:5000  # production
"""

from blindtest import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=True, host="127.0.0.1", port=5000)
