"""API client for the second-class activity portal."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

BASE_URL = "https://young.ustc.edu.cn/login/wisdom-group-learning-bg/"
PAGE_SIZE = 20
DEFAULT_RETRY = 3
UNLIMITED = -1


class APIError(RuntimeError):
    """Transport, envelope or server-reported failure."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class APIClient:
    def __init__(
        self,
        token: str | None = None,
        *,
        retry: int = DEFAULT_RETRY,
        backoff: float = 1.0,
        dump_json: bool = False,
        offline: bool = False,
    ) -> None:
        self.token = token
        self.retry = retry
        self.backoff = backoff
        self.dump_json = dump_json
        self.offline = offline
        self.session = requests.Session()
        self.json_dir = Path("out/json")
        if dump_json or offline:
            self.json_dir.mkdir(parents=True, exist_ok=True)

    def _json_path(self, endpoint: str) -> Path:
        name = endpoint.strip("/").replace("/", "_") + ".json"
        return self.json_dir / name

    def request(
        self,
        endpoint: str,
        method: str = "get",
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Perform one request and return the ``result`` of the envelope, if any."""
        return self._send(endpoint, method, params, body).get("result")

    def _send(
        self,
        endpoint: str,
        method: str,
        params: Optional[Dict[str, Any]],
        body: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        if self.offline:
            with self._json_path(endpoint).open("r", encoding="utf-8") as f:
                return {"success": True, "message": "", "result": json.load(f)}

        url = BASE_URL + endpoint.lstrip("/")
        headers = {"X-Access-Token": self.token} if self.token else {}
        method = method.lower()
        try:
            if method == "get":
                resp = self.session.get(url, params=params, headers=headers, timeout=30)
            elif method == "post":
                resp = self.session.post(
                    url, params=params, json=body or {}, headers=headers, timeout=30
                )
            else:
                raise APIError(f"Unsupported method {method!r}")
            resp.raise_for_status()
            envelope = resp.json()
        except requests.RequestException as exc:
            raise APIError(f"Request to {endpoint} failed: {exc}") from exc
        except ValueError as exc:
            raise APIError(f"Malformed response from {endpoint}: {exc}") from exc

        if not isinstance(envelope, dict) or "success" not in envelope:
            raise APIError(f"Malformed response from {endpoint}")
        if not envelope.get("success"):
            raise APIError(str(envelope.get("message") or f"{endpoint} failed"))
        if self.dump_json:
            with self._json_path(endpoint).open("w", encoding="utf-8") as f:
                json.dump(envelope.get("result"), f, ensure_ascii=False)
        return envelope

    def fetch_one(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        last_error: Exception = APIError(f"Failed to fetch {endpoint}")
        for attempt in range(self.retry):
            try:
                return self.request(endpoint, "get", params)
            except APIError as exc:
                logging.warning("Request error (attempt %d/%d): %s", attempt + 1, self.retry, exc)
                last_error = exc
                if attempt + 1 < self.retry:
                    time.sleep(self.backoff * 2**attempt)
        raise last_error

    def page_search(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        max_results: int = UNLIMITED,
        page_size: int = PAGE_SIZE,
    ) -> List[Dict[str, Any]]:
        results: List[Dict[str, Any]] = []
        query = dict(params or {})
        page = 1
        while max_results == UNLIMITED or len(results) < max_results:
            query["pageNo"] = page
            query["pageSize"] = page_size
            data = self.fetch_one(endpoint, query)
            if not isinstance(data, dict) or not isinstance(data.get("records"), list):
                raise APIError(f"Response from {endpoint} is missing records")
            if "total" not in data:
                raise APIError(f"Response from {endpoint} is missing total")
            try:
                total = int(data["total"])
            except (TypeError, ValueError, OverflowError) as exc:
                raise APIError(f"Response from {endpoint} has a bad total") from exc
            logging.debug("%s page %d: %d records of %d", endpoint, page, len(data["records"]), total)
            for record in data["records"]:
                results.append(record)
                if max_results != UNLIMITED and len(results) >= max_results:
                    break
            if page * page_size >= total:
                break
            page += 1
        return results

    def submit(
        self,
        endpoint: str,
        method: str = "post",
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send a state-changing request once and return the whole envelope."""
        return self._send(endpoint, method, params, body)
