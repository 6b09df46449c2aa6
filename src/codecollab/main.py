"""Application entry point for the CodeCollab backend server."""

from codecollab.app import App
from codecollab.config import Config
from codecollab.logging import setup_logging
from codecollab.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
