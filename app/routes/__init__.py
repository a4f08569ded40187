"""
HTTP routes, one blueprint per area, all under /api/v1
"""

from flask import current_app

API_PREFIX = "/api/v1"


def get_service(name):
    """Service instance wired by create_app"""
    return current_app.extensions["smartexam"][name]
