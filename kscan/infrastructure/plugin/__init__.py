"""Scanner integrations (Trivy, kube-hunter, kube-bench, Polaris)."""
