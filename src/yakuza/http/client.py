"""Logged HTTP client over a shared cookie jar."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.request import Request

import httpx

from yakuza.config import HttpSettings

logger = logging.getLogger(__name__)

ResponseCallback = Callable[[Exception | None, httpx.Response | None, str | None], None]
_URL_KEYS = ("url", "uri")


@dataclass(slots=True)
class RequestLogEntry:
    """One completed request as seen by the task that issued it."""

    response: httpx.Response
    body: str
    cookies: str
    request: httpx.Request
    url: str


@dataclass(frozen=True, slots=True)
class CookieRecord:
    """Structured copy of one stored cookie."""

    name: str
    value: str | None
    domain: str
    path: str


@dataclass(slots=True)
class RequestParams:
    """Normalized ``(target, options, callback)`` triple of a verb call."""

    url: str
    options: dict[str, Any]
    callback: ResponseCallback | None


def init_request_params(
    target: str | Mapping[str, Any],
    options_or_callback: Mapping[str, Any] | ResponseCallback | None = None,
    callback: ResponseCallback | None = None,
) -> RequestParams:
    """Resolve the flexible verb signature.

    ``target`` is a URL or an options mapping holding ``url`` (or ``uri``).
    The second argument is either an options mapping or the callback.
    """

    if callable(options_or_callback):
        if callback is not None:
            raise TypeError("Only one callback may be given")
        callback = options_or_callback
        options: dict[str, Any] = {}
    elif options_or_callback is None:
        options = {}
    elif isinstance(options_or_callback, Mapping):
        options = dict(options_or_callback)
    else:
        raise TypeError(f"Request options must be a mapping, got {options_or_callback!r}")

    if isinstance(target, str):
        url = target
    elif isinstance(target, Mapping):
        options = {**target, **options}
        url = next((options[key] for key in _URL_KEYS if options.get(key)), "")
    else:
        raise TypeError(f"Request target must be a URL or an options mapping, got {target!r}")

    for key in _URL_KEYS:
        options.pop(key, None)
    if not isinstance(url, str) or not url:
        raise ValueError("Request needs a non-empty URL")
    return RequestParams(url=url, options=options, callback=callback)


def cookie_string(cookies: httpx.Cookies, url: str) -> str:
    """Return the ``Cookie`` header the jar would send to ``url``."""

    probe = Request(url)
    cookies.jar.add_cookie_header(probe)
    return probe.get_header("Cookie", "") or ""


def snapshot_cookies(cookies: httpx.Cookies) -> list[CookieRecord]:
    return [
        CookieRecord(
            name=cookie.name,
            value=cookie.value,
            domain=cookie.domain,
            path=cookie.path,
        )
        for cookie in cookies.jar
    ]


def clone_cookie_jar(cookies: httpx.Cookies) -> httpx.Cookies:
    """Copy every stored cookie into a brand new jar."""

    clone = httpx.Cookies()
    for record in snapshot_cookies(cookies):
        clone.set(record.name, record.value or "", domain=record.domain, path=record.path)
    return clone


class HttpClient:
    """httpx client that logs every completed request for the owning task."""

    def __init__(
        self,
        cookies: httpx.Cookies | None = None,
        *,
        settings: HttpSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        settings = settings or HttpSettings()
        self._cookies = cookies if cookies is not None else httpx.Cookies()
        self._client = httpx.Client(
            timeout=httpx.Timeout(settings.timeout_seconds, connect=10.0),
            headers={"User-Agent": settings.user_agent},
            transport=transport or httpx.HTTPTransport(retries=settings.max_retries),
            follow_redirects=settings.follow_redirects,
        )
        # Share one CookieJar so cookies set by responses land in ``self._cookies``.
        self._client.cookies.jar = self._cookies.jar
        self._log: list[RequestLogEntry] = []

    @property
    def cookie_jar(self) -> httpx.Cookies:
        return self._cookies

    def get_log(self) -> list[RequestLogEntry]:
        return list(self._log)

    def get(
        self,
        target: str | Mapping[str, Any],
        options_or_callback: Mapping[str, Any] | ResponseCallback | None = None,
        callback: ResponseCallback | None = None,
    ) -> httpx.Response | None:
        return self._request("GET", target, options_or_callback, callback)

    def post(
        self,
        target: str | Mapping[str, Any],
        options_or_callback: Mapping[str, Any] | ResponseCallback | None = None,
        callback: ResponseCallback | None = None,
    ) -> httpx.Response | None:
        return self._request("POST", target, options_or_callback, callback)

    def put(
        self,
        target: str | Mapping[str, Any],
        options_or_callback: Mapping[str, Any] | ResponseCallback | None = None,
        callback: ResponseCallback | None = None,
    ) -> httpx.Response | None:
        return self._request("PUT", target, options_or_callback, callback)

    def patch(
        self,
        target: str | Mapping[str, Any],
        options_or_callback: Mapping[str, Any] | ResponseCallback | None = None,
        callback: ResponseCallback | None = None,
    ) -> httpx.Response | None:
        return self._request("PATCH", target, options_or_callback, callback)

    def head(
        self,
        target: str | Mapping[str, Any],
        options_or_callback: Mapping[str, Any] | ResponseCallback | None = None,
        callback: ResponseCallback | None = None,
    ) -> httpx.Response | None:
        return self._request("HEAD", target, options_or_callback, callback)

    def delete(
        self,
        target: str | Mapping[str, Any],
        options_or_callback: Mapping[str, Any] | ResponseCallback | None = None,
        callback: ResponseCallback | None = None,
    ) -> httpx.Response | None:
        return self._request("DELETE", target, options_or_callback, callback)

    def _request(
        self,
        method: str,
        target: str | Mapping[str, Any],
        options_or_callback: Mapping[str, Any] | ResponseCallback | None,
        callback: ResponseCallback | None,
    ) -> httpx.Response | None:
        params = init_request_params(target, options_or_callback, callback)
        try:
            response = self._client.request(method, params.url, **params.options)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, params.url, exc)
            if params.callback is None:
                raise
            params.callback(exc, None, None)
            return None

        self._intercept(response)
        if params.callback is not None:
            params.callback(None, response, response.text)
        return response

    def _intercept(self, response: httpx.Response) -> None:
        request_url = response.request.url
        origin = f"{request_url.scheme}://{request_url.host}"
        self._log.append(
            RequestLogEntry(
                response=response,
                body=response.text,
                cookies=cookie_string(self._cookies, origin),
                request=response.request,
                url=str(request_url),
            ),
        )
        logger.debug("%s %s -> %d", response.request.method, request_url, response.status_code)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

