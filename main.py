# main.py
import sys
import logging
import argparse

from config import load_config, setup_directories
from database import Database
from logger import configure_logger
from utils import export_catalog_csv, import_catalog, import_clients_csv

logger = logging.getLogger("counter_sale")


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description="Vente Comptoir - counter sale screen")
    parser.add_argument("--config", help="Path to configuration file", default="config.json")
    parser.add_argument("--debug", help="Enable debug mode", action="store_true")
    parser.add_argument("--import-catalog", help="CSV or Excel catalog to load before start",
                        dest="import_catalog", default=None)
    parser.add_argument("--import-clients", help="CSV client list to load before start",
                        dest="import_clients", default=None)
    parser.add_argument("--export-catalog", help="Write the catalog to a CSV file and exit",
                        dest="export_catalog", default=None)
    return parser.parse_args(argv)


def run_data_tasks(db, args, config=None):
    """Imports and exports requested on the command line. True when the screen should not start."""
    catalog_file = args.import_catalog or (config or {}).get("catalog", {}).get("import_file")
    if catalog_file:
        count = import_catalog(db, catalog_file)
        logger.info(f"Imported {count} product(s) from {catalog_file}")

    if args.import_clients:
        count = import_clients_csv(db, args.import_clients)
        logger.info(f"Imported {count} client(s) from {args.import_clients}")

    if args.export_catalog:
        export_catalog_csv(db, args.export_catalog)
        logger.info(f"Catalog exported to {args.export_catalog}")
        return True
    return False


def main(argv=None):
    try:
        args = parse_arguments(argv)

        config = load_config(args.config)
        if args.debug:
            config["logging"]["level"] = "DEBUG"
        configure_logger(config)
        logger.debug("Debug mode enabled")

        setup_directories(config)

        db_config = config["database"]
        db = Database(db_config.get("name", "comptoir.db"),
                      seed_demo_data=db_config.get("seed_demo_data", False))
        logger.info(f"Database initialized: {db_config.get('name')}")

        if run_data_tasks(db, args, config):
            db.close()
            return

        # needs a display
        from ui import CounterSaleUI
        app = CounterSaleUI(db, config)
        logger.info("Starting counter sale screen")
        app.run()

    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
