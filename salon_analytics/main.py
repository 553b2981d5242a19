"""
Salon Analytics API

Main entry point: `uvicorn salon_analytics.main:app`.
"""

from salon_analytics.config import get_settings
from salon_analytics.serving.api import create_api_app

app = create_api_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
