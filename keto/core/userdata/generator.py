import base64

import yaml

from keto.core.config import DEFAULT_COREOS_VERSION, DEFAULT_KUBE_VERSION
from keto.core.exceptions import InvalidSpecError, MissingAssetError
from keto.core.kubernetes import AssetBundle, ClusterSpec, PoolRole, PoolSpec
from keto.core.kubernetes.assets import (
    APISERVER_CERT,
    APISERVER_KEY,
    CA_CERT,
    CA_KEY,
    KUBELET_CERT,
    KUBELET_KEY,
)
from keto.core.kubernetes.configuration import validate_pool_spec
from keto.core.template_loader import TemplateLoader, template_loader
from keto.core.utils import setup_logger

REQUIRED_ASSETS: dict[PoolRole, tuple[str, ...]] = {
    PoolRole.MASTER: (CA_CERT, CA_KEY, APISERVER_CERT, APISERVER_KEY),
    PoolRole.COMPUTE: (CA_CERT, KUBELET_CERT, KUBELET_KEY),
}

# asset name -> (path on the node, permissions)
ASSET_PATHS: dict[str, tuple[str, str]] = {
    CA_CERT: ('/etc/kubernetes/ssl/ca.pem', '0644'),
    CA_KEY: ('/etc/kubernetes/ssl/ca-key.pem', '0600'),
    APISERVER_CERT: ('/etc/kubernetes/ssl/apiserver.pem', '0644'),
    APISERVER_KEY: ('/etc/kubernetes/ssl/apiserver-key.pem', '0600'),
    KUBELET_CERT: ('/etc/kubernetes/ssl/kubelet.pem', '0644'),
    KUBELET_KEY: ('/etc/kubernetes/ssl/kubelet-key.pem', '0600'),
}

TEMPLATES = {
    PoolRole.MASTER: 'master.yml',
    PoolRole.COMPUTE: 'compute.yml',
}


class UserDataGenerator:
    """Renders the first-boot payload of a node.

    Output depends only on the arguments, so the same inputs always yield
    byte-identical payloads. Nothing outside the AssetBundle is read.
    """

    def __init__(self, loader: TemplateLoader | None = None) -> None:
        self._logger = setup_logger('UserDataGenerator')
        self._loader = loader or template_loader

    def check_assets(self, role: PoolRole, assets: AssetBundle) -> None:
        missing = assets.missing(REQUIRED_ASSETS[role])

        if missing:
            raise MissingAssetError(str(role), missing)

    @staticmethod
    def _asset_files(role: PoolRole, assets: AssetBundle) -> list[dict[str, str]]:
        files = []

        for name in REQUIRED_ASSETS[role]:
            path, permissions = ASSET_PATHS[name]
            files.append(
                {
                    'path': path,
                    'permissions': permissions,
                    'content': base64.b64encode(assets.get(name)).decode('ascii'),
                }
            )

        return files

    @staticmethod
    def _kubelet_args(cluster_spec: ClusterSpec, pool_spec: PoolSpec) -> str:
        labels = {
            **pool_spec.labels,
            'keto.io/cluster': cluster_spec.name,
            'keto.io/pool': pool_spec.name,
            f'node-role.kubernetes.io/{pool_spec.role}': '',
        }

        args = ['--node-labels=' + ','.join(f'{k}={v}' for k, v in sorted(labels.items()))]

        if pool_spec.taints:
            args.append(
                '--register-with-taints='
                + ','.join(f'{k}={value}:{effect}' for k, (value, effect) in sorted(pool_spec.taints.items()))
            )

        if pool_spec.kubelet_extra_args:
            args.append(pool_spec.kubelet_extra_args.strip())

        return ' '.join(args)

    def generate(
        self,
        role: PoolRole,
        cluster_spec: ClusterSpec,
        pool_spec: PoolSpec,
        assets: AssetBundle,
        master_endpoint: str | None = None,
    ) -> bytes:
        if pool_spec.role != role:
            raise InvalidSpecError(
                f"Pool '{pool_spec.name}' has role {pool_spec.role}, cannot generate {role} userdata"
            )

        if role == PoolRole.COMPUTE and not master_endpoint:
            raise InvalidSpecError(f"Compute pool '{pool_spec.name}' userdata requires the master endpoint")

        validate_pool_spec(pool_spec)
        self.check_assets(role, assets)

        values = {
            'cluster_name': cluster_spec.name,
            'pool_name': pool_spec.name,
            'kube_version': cluster_spec.kube_version or DEFAULT_KUBE_VERSION,
            'os_version': pool_spec.os_version or DEFAULT_COREOS_VERSION,
            'files': self._asset_files(role, assets),
            'kubelet_args': self._kubelet_args(cluster_spec, pool_spec),
        }

        if role == PoolRole.MASTER:
            values |= {
                'internal': cluster_spec.internal,
                'networks': cluster_spec.networks,
                'dns_zone': cluster_spec.dns_zone or '',
                'api_endpoint': f'kube.{cluster_spec.name}.{cluster_spec.dns_zone}' if cluster_spec.dns_zone else '',
                'master_count': pool_spec.size or 0,
                'api_server_args': pool_spec.api_server_extra_args.strip(),
                'controller_manager_args': pool_spec.controller_manager_extra_args.strip(),
                'scheduler_args': pool_spec.scheduler_extra_args.strip(),
            }
        else:
            values['master_endpoint'] = master_endpoint

        rendered = self._loader.render_template(TEMPLATES[role], template_module='userdata', values=values)

        try:
            yaml.safe_load(rendered)
        except yaml.YAMLError as e:
            raise InvalidSpecError(f"Rendered {role} userdata of pool '{pool_spec.name}' is not valid YAML: {e}") from e

        self._logger.debug(f'Generated {role} userdata for pool {pool_spec.name} of cluster {cluster_spec.name}')

        return rendered.encode('utf-8')
