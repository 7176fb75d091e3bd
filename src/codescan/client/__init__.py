"""Scan service clients."""

from codescan.client.http import HttpScanClient
from codescan.client.protocol import ScanServiceClient

__all__ = ["HttpScanClient", "ScanServiceClient"]
