from kscan.domain.scan.util.di.provider import ScanProvider

__all__ = ["ScanProvider"]
