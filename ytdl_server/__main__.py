import uvicorn
from ytdl_server.config.settings import load_settings
from ytdl_server.core.logging import setup_logging
from ytdl_server.main import create_app, print_startup_banner


def run() -> None:
    """Console entry point: load settings once, then serve on HOST:PORT"""
    settings = load_settings()
    setup_logging(settings)
    app = create_app(settings)
    print_startup_banner(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
