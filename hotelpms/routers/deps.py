"""
Router dependencies
"""
from fastapi import Request

from hotelpms.container import Container


def get_container(request: Request) -> Container:
    """Dependency: the container built at startup"""
    return request.app.state.container
