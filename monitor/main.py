from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from monitor.config import MONITOR_CONFIG, ConfigError, load_config, validate_config
from monitor.core import SessionManager
from monitor.dispatch import Dispatcher, DocumentSink
from monitor.sink import ElasticsearchSink

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Forward Folding@home client updates to Elasticsearch")
    parser.add_argument("--client-name", help="Name of Folding@home Client for identification")
    parser.add_argument("--client-port", help="host:port of the Folding@home Client command server")
    parser.add_argument("--elasticsearch", help="comma-separated URL list of elasticsearch")
    parser.add_argument("--log-level", help="logging level (DEBUG, INFO, ...)")
    parser.add_argument("--env-file", default=".env", help="dotenv file with MONITOR_* settings")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Dict[str, Any]:
    config = load_config(args.env_file)
    for key in ("client_name", "client_port", "elasticsearch", "log_level"):
        value = getattr(args, key)
        if value is not None:
            config[key] = value
    validate_config(config)
    return config


def build_session(config: Dict[str, Any]) -> SessionManager:
    session = SessionManager(
        endpoint=config["client_port"],
        reconnect_backoff=float(config["reconnect_backoff"]),
        connect_timeout=float(config["connect_timeout"]),
    )
    session.watch_heartbeat(config["heartbeat_interval"])
    session.watch_queue_info(config["queue_info_interval"])
    session.watch_slot_info(config["slot_info_interval"])
    return session


async def run_monitor(config: Optional[Dict[str, Any]] = None, sink: Optional[DocumentSink] = None) -> int:
    config = config or MONITOR_CONFIG
    session = build_session(config)
    es_sink: Optional[ElasticsearchSink] = None
    if sink is None:
        sink = es_sink = ElasticsearchSink(config["elasticsearch"], timeout=float(config["index_timeout"]))
    dispatcher = Dispatcher(session, sink, client_name=config["client_name"], index_prefix=config["index_prefix"])

    session_task = session.start()
    dispatch_task = asyncio.create_task(dispatcher.run(), name="dispatcher")
    try:
        done, _ = await asyncio.wait({session_task, dispatch_task}, return_when=asyncio.FIRST_COMPLETED)
        if dispatch_task in done:
            return dispatch_task.result()
        # A fatal report is already with the dispatcher at this point.
        session_task.result()
        return await dispatch_task
    finally:
        dispatch_task.cancel()
        await asyncio.gather(dispatch_task, return_exceptions=True)
        await session.stop()
        if es_sink is not None:
            await es_sink.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = build_config(args)
    except ConfigError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return 2
    logging.basicConfig(level=config["log_level"], format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logger.info("Watching %s as %r", config["client_port"], config["client_name"])
    try:
        return asyncio.run(run_monitor(config))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
