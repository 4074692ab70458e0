"""Run the API with uvicorn: ``python -m expense_api``."""

import argparse

import uvicorn

from expense_api.app import create_app
from expense_config import get_active_config


def main() -> None:
    parser = argparse.ArgumentParser(description="Expense tracker API server")
    parser.add_argument("--config", default=None, help="YAML configuration file")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    app = create_app(get_active_config(args.config))
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
