"""
Backend client.

Talks to the recipe search backend over HTTP:

    GET /api/elements                       element catalog
    GET /api/bfs-tree/{target}?count=N      BFS search
    GET /api/dfs-tree/{target}?count=N      DFS search
    GET /api/bidirectional/{target}?count=N&multithreaded=true&tree=true

Every call returns a Result so callers decide how to report failures.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

import requests
from pydantic import ValidationError

from .config import DEFAULT_API_URL, DEFAULT_WS_URL, HTTP_TIMEOUT
from .core.errors import BackendError
from .core.result import Err, Ok, Result
from .core.types import Algorithm, Element

logger = logging.getLogger(__name__)

SEARCH_PATHS = {
    Algorithm.BFS: "bfs-tree",
    Algorithm.DFS: "dfs-tree",
    Algorithm.BIDIRECTIONAL: "bidirectional",
}


class BackendClient:
    """
    HTTP client for the search backend.

    Usage:
        client = BackendClient("http://localhost:8080/api")
        result = client.run_search("Brick", Algorithm.BFS, count=3)
        if result.is_ok():
            payload = result.unwrap()
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        ws_url: str = DEFAULT_WS_URL,
        timeout: float = HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.ws_url = ws_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def load_catalog(self) -> Result[List[Element], BackendError]:
        """Fetch every known element."""
        result = self._get_json(f"{self.api_url}/elements")
        if result.is_err():
            return result

        data = result.unwrap()
        if isinstance(data, dict):
            data = data.get("elements", [])
        if not isinstance(data, list):
            return Err(BackendError("Unexpected catalog payload", url=f"{self.api_url}/elements"))

        elements = []
        for entry in data:
            try:
                elements.append(Element.model_validate(entry))
            except ValidationError:
                logger.debug(f"Skipping malformed catalog entry: {entry!r}")
        logger.debug(f"Loaded {len(elements)} elements")
        return Ok(elements)

    def run_search(
        self, target: str, algorithm: Algorithm | str, count: int = 1
    ) -> Result[Any, BackendError]:
        """Run a recipe search and return the raw payload for the normalizer."""
        algorithm = Algorithm.parse(algorithm)
        params: Dict[str, Any] = {"count": max(int(count), 1)}
        if algorithm is Algorithm.BIDIRECTIONAL:
            params.update({"multithreaded": "true", "tree": "true"})
        url = f"{self.api_url}/{SEARCH_PATHS[algorithm]}/{quote(target, safe='')}"
        logger.info(f"Searching {target!r} with {algorithm} (count={params['count']})")
        return self._get_json(url, params=params)

    def stream_url(self, target: str, algorithm: Algorithm | str) -> str:
        """Websocket URL of the animation stream for a search."""
        algorithm = Algorithm.parse(algorithm)
        query = urlencode({"algorithm": str(algorithm)})
        return f"{self.ws_url}/{quote(target, safe='')}?{query}"

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Result[Any, BackendError]:
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.debug(f"Request to {url} failed: {e}")
            return Err(BackendError(f"Backend unreachable: {e}", url=url, cause=e))

        if not resp.ok:
            detail = (resp.text or "").strip()[:200]
            message = f"Backend request failed: {detail}" if detail else "Backend request failed"
            return Err(BackendError(message, url=url, status_code=resp.status_code))

        try:
            return Ok(resp.json())
        except ValueError as e:
            return Err(BackendError("Backend returned invalid JSON", url=url, status_code=resp.status_code, cause=e))
