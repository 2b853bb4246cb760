"""HTTP layer: the FastAPI app factory and the action-dispatched routers."""

from keepsake.api.app import create_app

__all__ = ["create_app"]
