from .routes import router, get_ingestor_app

__all__ = ["router", "get_ingestor_app"]
