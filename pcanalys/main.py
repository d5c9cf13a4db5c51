"""
Process entry point: wires configuration, persistence, generation and the
HTTP app together, then serves it with uvicorn.
"""

import argparse

import uvicorn
from fastapi import FastAPI

from pcanalys.api.main import create_app
from pcanalys.config.manager import ConfigManager
from pcanalys.services.analysis_store import SQLAlchemyAnalysisStore
from pcanalys.services.database.engine import DatabaseManager
from pcanalys.services.generation.client import GroqGenerationClient
from pcanalys.services.recommendation.orchestrator import RecommendationStreamOrchestrator
from pcanalys.utils.logger import log


def build_app(config: ConfigManager) -> FastAPI:
    database_url = config.get("database_url")
    if database_url:
        db_manager = DatabaseManager(url=database_url)
    else:
        db_manager = DatabaseManager(db_path=config.get("db_path"))
    db_manager.init_db()

    store = SQLAlchemyAnalysisStore(db_manager)
    generator = GroqGenerationClient(config)
    orchestrator = RecommendationStreamOrchestrator(store, generator)
    return create_app(store, orchestrator, config)


def main(argv=None):
    parser = argparse.ArgumentParser(description="PcAnalys report service")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--config-dir", default=None, help="Directory holding config.json")
    args = parser.parse_args(argv)

    config = ConfigManager(config_dir=args.config_dir)
    config.migrate_legacy_keys()
    if not config.get_secure("GROQ_API_KEY"):
        log.warning("GROQ_API_KEY is not set; recommendation requests will fail with 502")

    app = build_app(config)
    uvicorn.run(app, host=args.host, port=args.port, log_level=str(config.get("log_level", "info")).lower())


if __name__ == "__main__":
    main()
