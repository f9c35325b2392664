import logging
from typing import Any, Dict, Iterator, Optional

import requests

from couchdump.core.sources._base import Batch, Source
from couchdump.exceptions import FeedError, SourceUnavailable
from couchdump.utils import redact_url

logger = logging.getLogger('couchdump')


class HttpSource(Source):
    """CouchDB-compatible database reached over HTTP(S)"""

    db_type = "http"

    def __init__(self, identifier: str, cookie: Optional[str] = None,
                 lenient_cookie_auth: bool = True, timeout: Optional[float] = None,
                 http_session=None):
        super().__init__(identifier.rstrip('/'))
        self.cookie = cookie
        self.lenient_cookie_auth = lenient_cookie_auth
        self.timeout = timeout
        if http_session is None:
            http_session = requests.Session()
        self.http_session = http_session
        if cookie:
            self.http_session.headers.update({'Cookie': cookie})

    @property
    def display_name(self) -> str:
        return redact_url(self.identifier)

    def probe(self):
        logger.debug(f"Checking {self.display_name}")
        try:
            response = self.http_session.get(self.identifier, timeout=self.timeout)
        except requests.RequestException as e:
            raise SourceUnavailable(f"{self.display_name}: {e}") from e

        if 200 <= response.status_code < 300:
            return
        if response.status_code == 401 and self.cookie and self.lenient_cookie_auth:
            # cookie auth cannot be verified with a plain GET
            logger.warning(f"{self.display_name} answered 401; continuing with the supplied cookie")
            return
        logger.error(response.text)
        raise SourceUnavailable(f"{self.display_name}: {response.status_code}", details=response.text)

    def _get_json(self, url: str, params: Dict[str, Any] = None) -> Dict[str, Any]:
        try:
            response = self.http_session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise FeedError(f"Could not fetch {redact_url(url)}: {e}") from e
        if not response.ok:
            raise FeedError(f"Could not fetch {redact_url(url)}: {response.status_code}, {response.text}")
        return response.json()

    def _post_json(self, url: str, body: Dict[str, Any], params: Dict[str, Any] = None) -> Dict[str, Any]:
        try:
            response = self.http_session.post(url, params=params, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise FeedError(f"Could not post to {redact_url(url)}: {e}") from e
        if not response.ok:
            raise FeedError(f"Could not post to {redact_url(url)}: {response.status_code}, {response.text}")
        return response.json()

    def info(self) -> Dict[str, Any]:
        return self._get_json(self.identifier)

    def changes(self, batch_size: int) -> Iterator[Batch]:
        since: Any = 0
        while True:
            page = self._get_json(f"{self.identifier}/_changes", params={
                'style': 'all_docs',
                'since': since,
                'limit': batch_size,
            })
            results = page.get('results', [])
            if not results:
                return

            # every leaf revision, so conflicts are exported too
            wanted = [
                {'id': change['id'], 'rev': rev['rev']}
                for change in results
                for rev in change.get('changes', [])
            ]
            docs = []
            if wanted:
                fetched = self._post_json(
                    f"{self.identifier}/_bulk_get",
                    body={'docs': wanted},
                    params={'revs': 'true', 'attachments': 'true'},
                )
                for result in fetched.get('results', []):
                    for doc in result.get('docs', []):
                        if 'ok' in doc:
                            docs.append(doc['ok'])
                        else:
                            error = doc.get('error', {})
                            raise FeedError(f"Could not fetch {result.get('id')}: {error}")

            since = page.get('last_seq', results[-1].get('seq'))
            yield since, docs

            if len(results) < batch_size:
                return

    def close(self):
        self.http_session.close()
