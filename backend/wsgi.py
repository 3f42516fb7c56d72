# backend/wsgi.py
from dealerhub import create_app

app = create_app()
