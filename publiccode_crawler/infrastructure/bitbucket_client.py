"""Bitbucket REST listing handler."""
import json
import logging
from typing import Optional
from publiccode_crawler.domain.fetch_interface import IFetchClient, IPageHandler
from publiccode_crawler.domain.models import Domain, PageResult, Repository


logger = logging.getLogger(__name__)

RAW_FILE_URL = "https://bitbucket.org/{name}/raw/{branch}/{file_name}"


class BitbucketPageHandler(IPageHandler):
    """Reads a workspace listing from the Bitbucket 2.0 REST API.

    Listing pages are JSON documents with a "values" array and a "next"
    link that is absent on the last page.
    """

    def __init__(self, domain: Domain, fetch_client: IFetchClient, file_name: str):
        self._domain = domain
        self._fetch_client = fetch_client
        self._file_name = file_name

    def parse_page(self, body: bytes) -> PageResult:
        """Transform a listing document into a PageResult."""
        document = json.loads(body)
        repositories = []

        for value in document.get("values") or []:
            name = value.get("full_name")
            mainbranch: Optional[dict] = value.get("mainbranch")
            if not name or not mainbranch:
                continue
            repositories.append(Repository(
                name=name,
                file_raw_url=RAW_FILE_URL.format(
                    name=name,
                    branch=mainbranch.get("name", "master"),
                    file_name=self._file_name
                ),
                domain=self._domain.id
            ))

        return PageResult(repositories=repositories, next_url=document.get("next") or "")

    async def process_page(self, url: str) -> PageResult:
        response = await self._fetch_client.get(url)
        if not response.ok:
            raise RuntimeError(f"Bitbucket listing {url} returned HTTP {response.status}")

        page = self.parse_page(response.body)
        logger.info(f"{self._domain.id}: {len(page.repositories)} repositories on {url}")
        return page
