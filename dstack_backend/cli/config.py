import click

from dstack_backend.api import WhitelistClient


class Config:
    def __init__(self):
        self._client: WhitelistClient = None
        self.url = ""

    def set_url(self, url):
        self.url = url

    @property
    def client(self) -> WhitelistClient:
        # lazy client construction
        if self._client is None:
            self._client = WhitelistClient(self.url)
            click.echo("--connecting to [%s]--" % self.url, err=True)
        return self._client

    async def close_client(self):
        if self._client is None:
            return
        await self._client.close()


pass_config = click.make_pass_decorator(Config, ensure=True)
