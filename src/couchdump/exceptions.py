"""
Errors raised while configuring and running an export.
"""


class CouchDumpError(Exception):
    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(CouchDumpError):
    ...


class MissingDatabase(ConfigurationError):
    ...


class AsymmetricCredentials(ConfigurationError):
    ...


class CredentialsNotApplicable(ConfigurationError):
    ...


class SplitWithoutOutput(ConfigurationError):
    ...


class InvalidSplit(ConfigurationError):
    ...


class InvalidBatchSize(ConfigurationError):
    ...


class SourceUnavailable(CouchDumpError):
    ...


class SourceNotFoundException(CouchDumpError):
    ...


class FeedError(CouchDumpError):
    ...


class WriteError(CouchDumpError):
    ...
