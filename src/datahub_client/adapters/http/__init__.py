"""HTTP adapters for the DataHub API."""

from datahub_client.adapters.http.auth import RAWSTORE, SOURCE, ServiceAuthorizer
from datahub_client.adapters.http.client import ApiClient, response_error


__all__ = ["RAWSTORE", "SOURCE", "ApiClient", "ServiceAuthorizer", "response_error"]
