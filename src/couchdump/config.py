import os

from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, urlsplit

from couchdump.exceptions import (
    AsymmetricCredentials,
    CredentialsNotApplicable,
    InvalidBatchSize,
    InvalidSplit,
    MissingDatabase,
    SplitWithoutOutput,
)
from couchdump.utils import is_network_identifier

DEFAULT_BATCH_SIZE: int = 100
DUMP_FORMAT_VERSION: str = "1.2.6"


@dataclass
class Config:
    """
    Settings for a single export run.

    Values come from the environment (see from_env) and are overridden by
    command line flags.
    """

    database: Optional[str] = None
    output_file: Optional[str] = None

    username: Optional[str] = None
    password: Optional[str] = None
    cookie: Optional[str] = None

    # Documents per output file; None means a single output
    split: Optional[int] = None
    # Documents per change record; None picks one from split
    batch_size: Optional[int] = None

    log_level: str = "INFO"
    progress: bool = True

    # A 401 alongside a cookie is accepted without checking the cookie
    lenient_cookie_auth: bool = True
    http_timeout: Optional[float] = None

    format_version: str = DUMP_FORMAT_VERSION

    @property
    def is_remote(self) -> bool:
        return bool(self.database) and is_network_identifier(self.database)

    def validate(self):
        if not self.database:
            raise MissingDatabase("You need to supply a database URL or filepath. -h for help")
        if bool(self.username) != bool(self.password):
            raise AsymmetricCredentials("You must either supply both a username and password, or neither")
        if self.password and not self.is_remote:
            raise CredentialsNotApplicable(
                "Usernames/passwords are only for remote databases",
                details=f"Is {self.database} a remote database?")
        if self.split is not None and not self.output_file:
            raise SplitWithoutOutput("If you supply a split, you must also supply an outfile")
        if self.split is not None and self.split < 1:
            raise InvalidSplit(f"Split must be a positive number of documents, got {self.split}")
        if self.batch_size is not None and self.batch_size < 1:
            raise InvalidBatchSize(f"Batch size must be a positive integer, got {self.batch_size}")

    def source_url(self) -> str:
        """The database identifier with credentials embedded, when supplied"""
        if not (self.username and self.password):
            return self.database
        parsed = urlsplit(self.database)
        host = parsed.netloc.rsplit('@', 1)[-1]
        path = parsed.path
        if parsed.query:
            path = f"{path}?{parsed.query}"
        return f"{parsed.scheme}://{quote(self.username, safe='')}:{quote(self.password, safe='')}@{host}{path}"

    def effective_batch_size(self) -> int:
        # Batch size does not change the output, only how often the split
        # threshold and the progress bar are checked
        if self.split:
            return max(1, self.split // 10)
        if self.batch_size:
            return self.batch_size
        return DEFAULT_BATCH_SIZE

    @classmethod
    def from_env(cls, **overrides):
        env_vars = {
            "username": "COUCHDUMP_USERNAME",
            "password": "COUCHDUMP_PASSWORD",
            "cookie": "COUCHDUMP_COOKIE",
            "log_level": "COUCHDUMP_LOG_LEVEL",
            "batch_size": "COUCHDUMP_BATCH_SIZE",
            "http_timeout": "COUCHDUMP_HTTP_TIMEOUT",
            "lenient_cookie_auth": "COUCHDUMP_LENIENT_COOKIE_AUTH",
        }
        kwargs = {}
        for kwarg, env_var in env_vars.items():
            env_value = os.environ.get(env_var)
            if env_value:
                kwargs[kwarg] = env_value
                if kwarg == 'batch_size':
                    kwargs[kwarg] = int(env_value)
                if kwarg == 'http_timeout':
                    kwargs[kwarg] = float(env_value)
                if kwarg == 'lenient_cookie_auth':
                    kwargs[kwarg] = env_value.lower() not in ("0", "false", "no")
        kwargs.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**kwargs)
