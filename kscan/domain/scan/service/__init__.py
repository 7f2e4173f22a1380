from kscan.domain.scan.service.orchestrator import ScanOrchestrator

__all__ = ["ScanOrchestrator"]
