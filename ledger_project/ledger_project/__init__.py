# Celery instance is defined in ledger_project/celery.py
# celery_app becomes the singleton task queue app for the whole project
from .celery import celery_app

# 'from ledger_project import *' only exports celery_app
__all__ = ("celery_app",)

""" When you run Celery workers, "celery -A ledger_project worker -l info"
    Import ledger_project/__init__.py → which exposes celery_app
    → the worker picks up ledger_core.tasks (audit delivery). """
