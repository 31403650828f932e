from flask import Blueprint, current_app

from utils.extensions import STORAGE_EXTENSION

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            store:
              type: string
              example: ok
      503:
        description: Session store unreachable
    """
    storage = current_app.extensions.get(STORAGE_EXTENSION)
    if storage is not None and not storage.ping():
        return {"status": "degraded", "store": "unavailable", "version": "1.0.0"}, 503
    return {"status": "ok", "store": "ok", "version": "1.0.0"}, 200
