from collections.abc import Iterable
from datetime import timedelta

from dishka import Provider, provide
from kubernetes import client

from kscan.config import Config
from kscan.domain.report.port.repository import ReportReadWriter
from kscan.domain.task.port.logs import LogsReader
from kscan.domain.task.port.task_runner import TaskRunner
from kscan.domain.workload.port.resolver import ObjectResolver
from kscan.domain.workload.port.secrets import SecretsReader
from kscan.infrastructure.k8s.client import new_api_client
from kscan.infrastructure.k8s.logs import KubeLogsReader
from kscan.infrastructure.k8s.reconcile import SecretReconciler
from kscan.infrastructure.k8s.report_store import KubeReportReadWriter
from kscan.infrastructure.k8s.resolver import KubeObjectResolver
from kscan.infrastructure.k8s.runner import KubeTaskRunner
from kscan.infrastructure.k8s.secrets import KubeSecretsReader
from kscan.infrastructure.k8s.watch import KubeJobWatcher
from kscan.util.di.scope import Scope


class KubeProvider(Provider):
    @provide(scope=Scope.APP)
    def get_api_client(self, config: Config) -> Iterable[client.ApiClient]:
        api_client = new_api_client(config.kube)
        yield api_client
        api_client.close()

    @provide(scope=Scope.APP)
    def get_core(self, api_client: client.ApiClient) -> client.CoreV1Api:
        return client.CoreV1Api(api_client)

    @provide(scope=Scope.APP)
    def get_batch(self, api_client: client.ApiClient) -> client.BatchV1Api:
        return client.BatchV1Api(api_client)

    @provide(scope=Scope.APP)
    def get_apps(self, api_client: client.ApiClient) -> client.AppsV1Api:
        return client.AppsV1Api(api_client)

    @provide(scope=Scope.APP)
    def get_custom(self, api_client: client.ApiClient) -> client.CustomObjectsApi:
        return client.CustomObjectsApi(api_client)

    @provide(scope=Scope.UOW)
    def get_task_runner(
        self, core: client.CoreV1Api, batch: client.BatchV1Api, config: Config
    ) -> TaskRunner:
        return KubeTaskRunner(
            core=core,
            batch=batch,
            watcher=KubeJobWatcher(batch, resync_seconds=config.scan.resync_seconds),
            request_timeout=config.kube.request_timeout,
        )

    @provide(scope=Scope.UOW)
    def get_logs_reader(self, core: client.CoreV1Api, config: Config) -> LogsReader:
        return KubeLogsReader(core, request_timeout=config.kube.request_timeout)

    @provide(scope=Scope.UOW)
    def get_resolver(
        self,
        core: client.CoreV1Api,
        apps: client.AppsV1Api,
        batch: client.BatchV1Api,
        config: Config,
    ) -> ObjectResolver:
        return KubeObjectResolver(core, apps, batch, request_timeout=config.kube.request_timeout)

    @provide(scope=Scope.UOW)
    def get_secrets_reader(self, core: client.CoreV1Api, config: Config) -> SecretsReader:
        return KubeSecretsReader(core, request_timeout=config.kube.request_timeout)

    @provide(scope=Scope.UOW)
    def get_report_store(
        self, custom: client.CustomObjectsApi, resolver: ObjectResolver, config: Config
    ) -> ReportReadWriter:
        return KubeReportReadWriter(custom, resolver, request_timeout=config.kube.request_timeout)

    @provide(scope=Scope.UOW)
    def get_reconciler(
        self, core: client.CoreV1Api, batch: client.BatchV1Api, config: Config
    ) -> SecretReconciler:
        return SecretReconciler(
            core,
            batch,
            grace_period=timedelta(seconds=config.scan.orphan_grace_seconds),
            request_timeout=config.kube.request_timeout,
        )
