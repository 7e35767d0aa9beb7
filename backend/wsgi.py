# Overview: Flask entry point (FLASK_APP=wsgi.py) for the custody CLI.
from custody import create_app

app = create_app()
