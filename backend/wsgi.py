# backend/wsgi.py
from vendofy import create_app

app = create_app()
