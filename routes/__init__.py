# routes/__init__.py
# Общие помощники для blueprints

from flask import current_app, request

from extensions import db
from repository import ResponseRepository


def get_repository():
    return ResponseRepository(db.session)


def get_notifier():
    return current_app.extensions['notifier']


def request_info():
    return {
        'ip_address': request.remote_addr,
        'user_agent': request.headers.get('User-Agent', '')[:255],
    }
