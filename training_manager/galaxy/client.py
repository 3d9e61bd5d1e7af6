"""
HTTP client for the Galaxy admin API.

Handles connection setup, TLS verification (including custom PEM and PKCS12
truststores), API key authentication and response status checking. Galaxy
specific endpoints live in training_manager.galaxy.api.
"""

import json
import ssl
import logging
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse
from http.client import HTTPException, HTTPSConnection, HTTPConnection

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from training_manager.galaxy.base import (
    GalaxyAPIError,
    GalaxyAuthenticationError,
    GalaxyConnectionError,
    GalaxyNotFoundError,
)

logger = logging.getLogger(__name__)

API_KEY_HEADER = 'x-api-key'


class GalaxyClient:
    """
    Minimal JSON-over-HTTP client for a single Galaxy server.

    A fresh connection is opened for every request so one client can be shared
    by the worker threads of a reconciliation run.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize Galaxy client.

        Args:
            config: The 'galaxy' settings section (url, api_key, verify_ssl,
                timeout_seconds, truststore_file, truststore_type, truststore_password)
        """
        self.config = config
        self.base_url = config['url']
        self.api_key = config['api_key']
        self.verify_ssl = config.get('verify_ssl', True)
        self.timeout = config.get('timeout_seconds', 30)

        self.parsed_url = urlparse(self.base_url)
        self.host = self.parsed_url.netloc
        self.base_path = self.parsed_url.path.rstrip('/')

        self.ssl_context = None
        self._setup_ssl_context()

    def _setup_ssl_context(self):
        """Set up SSL context based on configuration."""
        if self.parsed_url.scheme != 'https':
            return

        if not self.verify_ssl:
            self.ssl_context = ssl._create_unverified_context()
            logger.warning(f"SSL verification disabled for {self.host}")
            return

        self.ssl_context = ssl.create_default_context()

        truststore_file = self.config.get('truststore_file')
        if truststore_file:
            self._load_truststore(truststore_file)

    def _load_truststore(self, truststore_file: str):
        """Load custom truststore/CA certificates."""
        truststore_type = str(self.config.get('truststore_type', 'PEM')).upper()
        truststore_password = self.config.get('truststore_password')

        try:
            if truststore_type == 'PEM':
                self.ssl_context.load_verify_locations(cafile=truststore_file)
                logger.info(f"Loaded PEM truststore: {truststore_file}")

            elif truststore_type == 'PKCS12':
                with open(truststore_file, 'rb') as f:
                    p12_data = f.read()

                _, certificate, additional_certificates = pkcs12.load_key_and_certificates(
                    p12_data, truststore_password.encode() if truststore_password else None
                )

                ca_certs = []
                if certificate:
                    ca_certs.append(certificate.public_bytes(serialization.Encoding.PEM))
                for cert in (additional_certificates or []):
                    ca_certs.append(cert.public_bytes(serialization.Encoding.PEM))

                if not ca_certs:
                    raise GalaxyAPIError(f"No certificates found in {truststore_file}")

                self.ssl_context.load_verify_locations(cadata=b''.join(ca_certs).decode('ascii'))
                logger.info(f"Loaded PKCS12 truststore: {truststore_file}")

            else:
                raise GalaxyAPIError(f"Unsupported truststore type: {truststore_type}")

        except GalaxyAPIError:
            raise
        except Exception as e:
            logger.error(f"Failed to load truststore {truststore_file}: {e}")
            raise GalaxyAPIError(f"Truststore loading failed: {e}")

    def _open_connection(self) -> Union[HTTPSConnection, HTTPConnection]:
        if self.parsed_url.scheme == 'https':
            return HTTPSConnection(self.host, context=self.ssl_context, timeout=self.timeout)
        return HTTPConnection(self.host, timeout=self.timeout)

    def request(self, method: str, path: str, body: Optional[Any] = None,
                expected_status: int = 200) -> Any:
        """
        Make an HTTP request to the Galaxy API.

        Args:
            method: HTTP method (GET, POST, PUT)
            path: API endpoint path, e.g. '/api/groups'
            body: JSON-serialisable request body
            expected_status: The only status code treated as success

        Returns:
            Decoded JSON response body, or None for an empty body

        Raises:
            GalaxyAPIError: If the request fails or returns another status
        """
        full_path = self.base_path + '/' + path.lstrip('/')

        headers = {
            API_KEY_HEADER: self.api_key,
            'Accept': 'application/json',
        }

        request_body = None
        if body is not None:
            request_body = json.dumps(body)
            headers['Content-Type'] = 'application/json'

        conn = self._open_connection()
        try:
            logger.debug(f"Making {method} request to {self.host}{full_path}")
            conn.request(method, full_path, request_body, headers)

            response = conn.getresponse()
            raw_data = response.read()

            logger.debug(f"Response status: {response.status} {response.reason}")
        except (ConnectionError, OSError) as e:
            raise GalaxyConnectionError(f"Connection error to {self.host}: {e}")
        except HTTPException as e:
            raise GalaxyConnectionError(f"HTTP protocol error from {self.host}: {e!r}")
        finally:
            conn.close()

        if response.status != expected_status:
            message = f"{method} {path} returned HTTP {response.status} {response.reason} (expected {expected_status})"
            if response.status in (401, 403):
                raise GalaxyAuthenticationError(message, status_code=response.status)
            if response.status == 404:
                raise GalaxyNotFoundError(message, status_code=response.status)
            raise GalaxyAPIError(message, status_code=response.status)

        try:
            response_data = raw_data.decode('utf-8')
        except UnicodeDecodeError as e:
            raise GalaxyAPIError(f"Invalid response encoding from {method} {path}: {e}")

        if not response_data.strip():
            return None
        try:
            return json.loads(response_data)
        except json.JSONDecodeError as e:
            raise GalaxyAPIError(f"Invalid JSON response from {method} {path}: {e}")

    def get(self, path: str) -> Any:
        return self.request('GET', path, expected_status=200)

    def post(self, path: str, body: Any) -> Any:
        return self.request('POST', path, body, expected_status=201)

    def put(self, path: str, body: Optional[Any] = None) -> Any:
        return self.request('PUT', path, body, expected_status=200)
