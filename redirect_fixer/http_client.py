"""
1.0 HEAD Client Module
Issues single HEAD requests for the redirect resolver.

Key features:
- Redirect following always disabled (the resolver drives recursion)
- Generous default timeout for slow origins
- Optional Basic authentication (staging sites behind a password)
- `Connection: close` on every request: no socket outlives its request;
  transport retries only on connection/read failures and only when
  configured (max_retries defaults to 0)
- Context manager; close() releases the session
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Mapping, Tuple

import requests
from requests.adapters import HTTPAdapter
from requests.auth import HTTPBasicAuth
from requests.structures import CaseInsensitiveDict
from urllib3.util.retry import Retry

from redirect_fixer.config import ResolverConfig
from redirect_fixer.errors import TransportFailure

logger = logging.getLogger(__name__)


@dataclass
class HeadResponse:
    """Status code and headers of one HEAD response."""
    status_code: int
    headers: Mapping[str, str] = field(default_factory=CaseInsensitiveDict)

    def __post_init__(self):
        if not isinstance(self.headers, CaseInsensitiveDict):
            self.headers = CaseInsensitiveDict(self.headers or {})

    @property
    def location(self) -> Optional[str]:
        return self.headers.get("Location") or None


class HeadClient:
    """
    2.0 HeadClient Class
    Thin wrapper around a requests Session that never follows redirects.
    """

    def __init__(self, config: Optional[ResolverConfig] = None, session: Optional[requests.Session] = None):
        """
        2.1 Initialize the client.

        Args:
            config: ResolverConfig (timeout, user agent, max_retries)
            session: Pre-built session (tests); a retrying one is created otherwise
        """
        self.config = config or ResolverConfig()
        self.session = session or self._create_session_with_retries()

        logger.debug(
            f"HeadClient initialized: "
            f"User-Agent={self.config.user_agent[:50]}, "
            f"timeout={self.config.timeout_seconds}s, "
            f"retries={self.config.max_retries}"
        )

    def _create_session_with_retries(self) -> requests.Session:
        """
        2.2 Create a requests Session.

        Retry strategy:
        - Connection and read failures only; status codes are never retried
          so that 429/5xx reach the resolver's policy untouched
        - Backoff: 1s, 2s, 4s between retries (exponential)
        """
        session = requests.Session()

        retry_strategy = Retry(
            total=self.config.max_retries,
            connect=self.config.max_retries,
            read=self.config.max_retries,
            status=0,
            backoff_factor=1,
            status_forcelist=[],
            allowed_methods=["HEAD"],
            raise_on_status=False,
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update({
            "User-Agent": self.config.user_agent,
            "Connection": "close",
        })

        return session

    def head(
        self,
        url: str,
        timeout: Optional[float] = None,
        credentials: Optional[Tuple[str, str]] = None,
    ) -> HeadResponse:
        """
        3.0 Send one HEAD request with redirects disabled.

        Raises:
            TransportFailure: no HTTP status could be obtained
        """
        timeout = timeout or self.config.timeout_seconds
        auth = HTTPBasicAuth(*credentials) if credentials else None

        try:
            response = self.session.head(
                url,
                timeout=timeout,
                allow_redirects=False,
                auth=auth,
            )
        except requests.exceptions.Timeout as e:
            raise TransportFailure('timeout', f"no response after {timeout}s") from e
        except requests.exceptions.ConnectionError as e:
            raise TransportFailure('connection_error', str(e)[:100]) from e
        except requests.exceptions.TooManyRedirects as e:
            raise TransportFailure('too_many_redirects', str(e)[:100]) from e
        except requests.exceptions.RequestException as e:
            raise TransportFailure('request_error', str(e)[:100]) from e

        return HeadResponse(status_code=response.status_code, headers=response.headers)

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
