import json
import logging
from logging.handlers import RotatingFileHandler

import pytest

from config import DEFAULT_CONFIG, load_config, merge_config, setup_directories
from logger import LOGGER_NAME, configure_logger, resolve_level
from main import parse_arguments, run_data_tasks


@pytest.fixture
def clean_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()


def test_load_config_creates_default_file(tmp_path):
    path = tmp_path / "config.json"
    config = load_config(str(path))
    assert config == DEFAULT_CONFIG
    assert json.loads(path.read_text()) == DEFAULT_CONFIG


def test_load_config_merges_sections(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"ui": {"currency": "EUR"}, "database": {"name": "x.db"}}))
    config = load_config(str(path))
    assert config["ui"] == {"theme": "default", "currency": "EUR"}
    assert config["database"]["name"] == "x.db"
    assert config["database"]["seed_demo_data"] is True
    assert config["logging"] == DEFAULT_CONFIG["logging"]


def test_load_config_invalid_json_uses_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert load_config(str(path)) == DEFAULT_CONFIG


def test_merge_config_does_not_mutate_defaults():
    config = merge_config({"ui": {"theme": "dark"}})
    config["ui"]["currency"] = "USD"
    assert DEFAULT_CONFIG["ui"] == {"theme": "default", "currency": "DZD"}


def test_setup_directories(tmp_path):
    log_file = tmp_path / "var" / "logs" / "comptoir.log"
    config = merge_config({"logging": {"file": str(log_file)},
                           "database": {"name": str(tmp_path / "data" / "c.db")}})
    setup_directories(config)
    assert log_file.parent.is_dir()
    assert (tmp_path / "data").is_dir()


def test_configure_logger(tmp_path, clean_logger):
    log_file = tmp_path / "logs" / "test.log"
    logger = configure_logger({"logging": {"level": "debug", "file": str(log_file)}})
    assert logger.level == logging.DEBUG
    assert any(isinstance(h, RotatingFileHandler) for h in logger.handlers)

    logging.getLogger("counter_sale.session").info("Transaction cleared")
    for handler in logger.handlers:
        handler.flush()
    assert "counter_sale.session - INFO - Transaction cleared" in log_file.read_text(encoding="utf-8")


def test_configure_logger_replaces_handlers(tmp_path, clean_logger):
    config = {"logging": {"file": str(tmp_path / "a.log")}}
    configure_logger(config)
    logger = configure_logger(config)
    assert len(logger.handlers) == 2


def test_parse_arguments():
    args = parse_arguments(["--debug", "--import-catalog", "catalog.csv"])
    assert args.debug
    assert args.import_catalog == "catalog.csv"
    assert args.import_clients is None
    assert args.export_catalog is None
    assert args.config == "config.json"

    args = parse_arguments(["--import-clients", "clients.csv", "--export-catalog", "out.csv"])
    assert args.import_clients == "clients.csv"
    assert args.export_catalog == "out.csv"


@pytest.mark.parametrize("name, expected", [
    ("debug", logging.DEBUG),
    ("WARNING", logging.WARNING),
    ("verbose", logging.INFO),
    (logging.ERROR, logging.ERROR),
])
def test_resolve_level(name, expected):
    assert resolve_level(name) == expected


def test_run_data_tasks_imports_and_keeps_screen(db, tmp_path):
    clients = tmp_path / "clients.csv"
    clients.write_text("id,name,discount\n7,Karim Saadi,10\n", encoding="utf-8")
    catalog = tmp_path / "catalog.csv"
    catalog.write_text("designation,price,stock,category,barcode\nCâble USB,350,40,,\n", encoding="utf-8")
    args = parse_arguments(["--import-catalog", str(catalog), "--import-clients", str(clients)])

    assert run_data_tasks(db, args) is False
    assert [p["designation"] for p in db.list_products()] == ["Câble USB"]
    assert [c["name"] for c in db.list_clients()] == ["Karim Saadi", "Divers"]


def test_run_data_tasks_export_skips_screen(demo_db, tmp_path):
    out = tmp_path / "export.csv"
    args = parse_arguments(["--export-catalog", str(out)])
    assert run_data_tasks(demo_db, args, DEFAULT_CONFIG) is True
    assert "Laptop Dell XPS 13" in out.read_text(encoding="utf-8")
