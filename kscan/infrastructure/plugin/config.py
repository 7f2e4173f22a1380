"""Configuration models for the scanner plugins."""

from enum import StrEnum

from pydantic import BaseModel

from kscan.domain.scan.model.value import PluginKind


class TrivyMode(StrEnum):
    STANDALONE = "Standalone"
    CLIENT_SERVER = "ClientServer"


class TrivyConfig(BaseModel):
    image_ref: str = "docker.io/aquasec/trivy:0.14.0"
    mode: TrivyMode = TrivyMode.STANDALONE
    server_url: str = "http://trivy-server.trivy-server:4954"
    severity: str = "UNKNOWN,LOW,MEDIUM,HIGH,CRITICAL"


class KubeHunterConfig(BaseModel):
    image_ref: str = "docker.io/aquasec/kube-hunter:0.4.0"


class KubeBenchConfig(BaseModel):
    image_ref: str = "docker.io/aquasec/kube-bench:0.4.0"


DEFAULT_POLARIS_CONFIG = """\
checks:
  cpuRequestsMissing: warning
  cpuLimitsMissing: warning
  memoryRequestsMissing: warning
  memoryLimitsMissing: warning
  tagNotSpecified: danger
  readinessProbeMissing: warning
  livenessProbeMissing: warning
  hostNetworkSet: warning
  hostPortSet: warning
  hostIPCSet: danger
  hostPIDSet: danger
  notReadOnlyRootFilesystem: warning
  privilegeEscalationAllowed: danger
  runAsRootAllowed: warning
  runAsPrivileged: danger
  dangerousCapabilities: danger
  insecureCapabilities: warning
"""


class PolarisConfig(BaseModel):
    image_ref: str = "quay.io/fairwinds/polaris:3.0"
    config_yaml: str = DEFAULT_POLARIS_CONFIG


class PluginConfig(BaseModel):
    """Which scanner runs, plus settings for every variant."""

    scanner: PluginKind = PluginKind.TRIVY
    trivy: TrivyConfig = TrivyConfig()
    kube_hunter: KubeHunterConfig = KubeHunterConfig()
    kube_bench: KubeBenchConfig = KubeBenchConfig()
    polaris: PolarisConfig = PolarisConfig()
