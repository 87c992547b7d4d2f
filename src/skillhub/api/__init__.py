"""SkillHub HTTP API"""

from .server import create_app, start_api_server

__all__ = ["create_app", "start_api_server"]
