# backend/wsgi.py
from bizsight import create_app

app = create_app()
