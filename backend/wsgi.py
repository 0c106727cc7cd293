# backend/wsgi.py
from expenseflow import create_app

app = create_app()
