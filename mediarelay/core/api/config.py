"""
Uploader configuration module.

Provides configuration for the upload engine and the file source resolver.
Open for extension through custom configurations.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
import os
import random


MIB = 1024 * 1024


@dataclass
class TimeoutConfig:
    """
    Timeout configuration.

    Granular control over different timeout types.
    """
    total: float = 300.0  # Total request timeout
    connect: float = 30.0  # Connection timeout
    sock_read: float = 120.0  # Socket read timeout
    sock_connect: float = 30.0  # Socket connect timeout

    def to_aiohttp_timeout(self):
        """Convert to aiohttp ClientTimeout."""
        import aiohttp
        return aiohttp.ClientTimeout(
            total=self.total,
            connect=self.connect,
            sock_read=self.sock_read,
            sock_connect=self.sock_connect
        )


@dataclass
class RetryConfig:
    """
    Retry policy for a single chunk.

    Attributes:
        max_attempts: Total attempts per chunk (first try included)
        base_delay: Delay before the first retry, in seconds
        cap_delay: Upper bound for any delay, in seconds
        jitter_fraction: Relative jitter applied to each delay (0.25 = +-25%)
    """
    max_attempts: int = 5
    base_delay: float = 1.0
    cap_delay: float = 30.0
    jitter_fraction: float = 0.25

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if not 0 <= self.jitter_fraction < 1:
            raise ValueError("jitter_fraction must be in [0, 1)")

    def calculate_delay(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """
        Calculate the delay before the given retry.

        Args:
            attempt: Retry number, starting at 1
            rng: Optional random source (for deterministic tests)

        Returns:
            Delay in seconds, never above cap_delay
        """
        delay = min(self.base_delay * (2 ** max(attempt - 1, 0)), self.cap_delay)
        if self.jitter_fraction:
            rng = rng or random
            delay *= 1 + rng.uniform(-self.jitter_fraction, self.jitter_fraction)
        return max(0.0, min(delay, self.cap_delay))


@dataclass
class SourceConfig:
    """
    Where received media lives and how to reach it.

    Attributes:
        storage_root: Path prefix under which the relay deposits files
        mounted_root: Optional host path where storage_root is mounted
        relay_url: Base URL of the relay's HTTP file endpoint
        bot_token: Token used in relay file URLs
        container: Name of the relay container for `docker cp` extraction
        download_chunk_size: Bytes read per network read while fetching
        download_connect_timeout: Seconds allowed to connect for a download
        download_read_timeout: Seconds allowed between reads of a download;
            downloads have no total deadline
        delete_after_upload: Remove the relay's copy after a successful upload
    """
    storage_root: str = '/var/lib/telegram-bot-api/'
    mounted_root: Optional[str] = None
    relay_url: str = 'http://localhost:8081'
    bot_token: str = ''
    container: Optional[str] = 'telegram-bot-api'
    download_chunk_size: int = 64 * 1024
    download_connect_timeout: float = 30.0
    download_read_timeout: float = 120.0
    delete_after_upload: bool = True


@dataclass
class UploaderConfig:
    """
    Complete uploader configuration.

    Centralizes all configuration options for the upload engine.
    """
    # Backend settings
    base_url: str = 'http://localhost:3000'
    upload_path: str = '/api/v1/uploads'
    simple_upload_path: str = '/api/v1/lectures/upload'
    protocol_version: str = '1.0.0'
    artifact_header: str = 'X-Lecture-Id'

    # Transfer settings
    chunk_size: int = 5 * MIB
    simple_threshold: int = 10 * MIB
    max_session_restarts: int = 3

    # User agent
    user_agent: str = 'mediarelay/1.0.0'

    # Sub-configurations
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    source: SourceConfig = field(default_factory=SourceConfig)

    # Additional headers
    extra_headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        if self.simple_threshold <= 0:
            raise ValueError("Simple upload threshold must be positive")
        if self.max_session_restarts < 0:
            raise ValueError("max_session_restarts must not be negative")
        self.base_url = self.base_url.rstrip('/')

    @property
    def upload_endpoint(self) -> str:
        """Resumable upload collection endpoint."""
        return self.base_url + self.upload_path

    @property
    def simple_endpoint(self) -> str:
        """Single-request multipart upload endpoint."""
        return self.base_url + self.simple_upload_path

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **kwargs) -> 'UploaderConfig':
        """
        Create configuration from environment variables.

        Reads API_BASE_URL, LOCAL_BOT_API_URL, LOCAL_BOT_API_FILES_PATH,
        BOT_TOKEN, RELAY_STORAGE_ROOT and RELAY_CONTAINER. Missing values
        fall back to the defaults.
        """
        env = os.environ if environ is None else environ
        source = SourceConfig()
        source.relay_url = env.get('LOCAL_BOT_API_URL') or source.relay_url
        source.mounted_root = env.get('LOCAL_BOT_API_FILES_PATH') or None
        source.bot_token = env.get('BOT_TOKEN', '')
        source.storage_root = env.get('RELAY_STORAGE_ROOT') or source.storage_root
        if 'RELAY_CONTAINER' in env:
            source.container = env['RELAY_CONTAINER'] or None
        values = {
            'base_url': env.get('API_BASE_URL') or cls.base_url,
            'source': source,
        }
        values.update(kwargs)
        return cls(**values)

    def get_session_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp ClientSession."""
        headers = {
            'User-Agent': self.user_agent,
            **self.extra_headers
        }

        return {
            'headers': headers,
            'timeout': self.timeout.to_aiohttp_timeout(),
        }
