import os
import sys
import signal
import asyncio
import logging
import argparse
import configparser
from typing import Optional

from aiohttp import web

from dstack_backend.models import config, Identity, IdentityStore, HealthAggregator
from dstack_backend.errors import ConfigurationError, FatalStartupError
from dstack_backend.api import DStackClient
from dstack_backend.services import load_config, registration
from dstack_backend.constants import ServiceNames
from dstack_backend.utilities import local_ip
from dstack_backend import app_keys
import dstack_backend.middleware
import dstack_backend.controllers

log = logging.getLogger('dstack_backend')
async_log = logging.getLogger('asyncio')
async_log.setLevel(logging.WARNING)

LOG_FORMAT = '%(asctime)s %(levelname)s:%(message)s'


class Daemon(object):

    def __init__(self, my_config: config.BackendConfig):
        self.config: config.BackendConfig = my_config
        self.identity_store = IdentityStore(my_config.data_directory)
        self.identity: Optional[Identity] = None
        self.dstack: Optional[DStackClient] = None
        self.stop_requested = False

    async def initialize(self):
        """Register the node identity, raises FatalStartupError on failure"""
        log.info("Worker registration is required to communicate with the message network")
        self.identity = await registration.ensure_registered(self.config, self.identity_store)
        log.info("Worker is now authorized to communicate with the message network")

    def build_app(self) -> web.Application:
        if self.identity is None:
            raise FatalStartupError("cannot serve before the worker is registered")
        self.dstack = DStackClient(self.config.dstack_url, self.config.telemetry_timeout)
        aggregator = HealthAggregator(self.dstack,
                                      public_key=self.identity.public_key,
                                      ip_address=local_ip())
        app = web.Application(middlewares=[dstack_backend.middleware.cors])
        app[app_keys.name] = ServiceNames.backend
        app[app_keys.health_aggregator] = aggregator
        app.add_routes(dstack_backend.controllers.routes)
        return app

    async def run(self):
        app = self.build_app()
        runner = web.AppRunner(app)
        try:
            await runner.setup()
            site = web.TCPSite(runner, self.config.ip_address, self.config.port)
            await site.start()
            log.info("Backend listening on %s:%d" % (self.config.ip_address, self.config.port))

            # sleep and check for stop condition
            while not self.stop_requested:
                await asyncio.sleep(0.5)
        finally:
            # clean everything up
            try:
                await asyncio.wait_for(runner.cleanup(), 5)
            except asyncio.TimeoutError:
                log.warning("unclean server shutdown")
            finally:
                await self.dstack.close()

    def stop(self):
        self.stop_requested = True


def read_config_file(path: Optional[str]):
    if path is None:
        return None
    if os.path.isfile(path) is False:
        raise ConfigurationError("cannot load file [%s]" % path)
    cparser = configparser.ConfigParser()
    r = cparser.read(path)
    if len(r) != 1:
        raise ConfigurationError(f"cannot read {path}")
    return cparser


def main(argv=None):
    parser = argparse.ArgumentParser("DStack Backend Health Monitor")
    parser.add_argument("--config", default=None,
                        help="INI configuration file, environment variables take precedence")
    xargs = parser.parse_args(argv)

    logging.basicConfig(format=LOG_FORMAT, level=logging.INFO)
    try:
        my_config = load_config.run(custom_values=read_config_file(xargs.config))
    except ConfigurationError as e:
        log.error("Invalid configuration: %s" % e)
        sys.exit(1)
    log.setLevel(my_config.log_level)

    log.info("Starting DStack Backend Monitor")
    log.info("Listen address: %s:%d" % (my_config.ip_address, my_config.port))
    log.info("DStack URL config: %s" % my_config.dstack_url)
    log.info("Data directory: %s" % my_config.data_directory)
    log.info("Registry URL: %s" % my_config.registry.url)
    log.info("Owner address: %s" % my_config.registry.owner)
    log.info("Node type: %s" % my_config.registry.node_type)

    loop = asyncio.new_event_loop()
    daemon = Daemon(my_config)
    try:
        loop.run_until_complete(daemon.initialize())
    except FatalStartupError as e:
        log.error("Worker registration failed: %s" % e)
        log.error("Cannot start service without successful registration")
        loop.close()
        sys.exit(1)

    loop.add_signal_handler(signal.SIGINT, daemon.stop)
    loop.add_signal_handler(signal.SIGTERM, daemon.stop)

    daemon_task = loop.create_task(daemon.run())
    daemon_task.set_name("daemon")
    loop.run_until_complete(daemon_task)
    loop.close()
    sys.exit(0)


if __name__ == "__main__":
    main()
