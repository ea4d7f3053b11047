import pytest
from fastapi.testclient import TestClient

from keto.api import dependencies
from keto.api.main import app
from keto.core.kubernetes.assets import KNOWN_ASSETS
from tests.helpers import make_pem


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(dependencies, '_controllers', {})

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def assets_dir(tmp_path):
    for name in KNOWN_ASSETS:
        (tmp_path / name).write_bytes(make_pem(name))

    return str(tmp_path)


@pytest.fixture
def cluster(client, assets_dir):
    payload = {
        'name': 'demo',
        'networks': ['net-a'],
        'dns_zone': 'example.com',
        'master_pool_size': 3,
        'pool_size': 2,
        'compute_pools': 2,
        'labels': ['tier=web'],
        'taints': ['dedicated=web'],
        'assets_dir': assets_dir,
    }

    response = client.post('/clouds/memory/clusters', json=payload)
    assert response.status_code == 201

    return response.json()


class TestCloudRoutes:
    def test_version(self, client):
        response = client.get('/version')

        assert response.status_code == 200
        assert response.json() == {'version': '0.1.0'}

    def test_clouds(self, client):
        assert client.get('/clouds').json() == ['memory']

    def test_unknown_cloud(self, client):
        response = client.get('/clouds/gcp/clusters')

        assert response.status_code == 404
        assert response.json()['error'] == 'NotFoundError'
        assert 'memory' in response.json()['message']


class TestClusterRoutes:
    def test_create_cluster(self, cluster):
        state = cluster['state']

        assert state['name'] == 'demo'
        assert state['kube_version'] == 'v1.7.2'
        assert state['master_pool']['size'] == 3
        assert sorted(state['compute_pools']) == ['compute-0', 'compute-1']
        assert state['compute_pools']['compute-0']['labels'] == {'tier': 'web'}
        assert state['compute_pools']['compute-0']['taints'] == {'dedicated': ['web', 'NoSchedule']}
        assert [x['succeeded'] for x in cluster['pools']] == [True, True]

    def test_create_cluster_missing_assets_dir(self, client, tmp_path):
        payload = {'name': 'demo', 'assets_dir': str(tmp_path / 'missing')}

        response = client.post('/clouds/memory/clusters', json=payload)

        assert response.status_code == 422
        assert response.json()['error'] == 'InvalidSpecError'

    def test_create_cluster_missing_assets(self, client, tmp_path):
        (tmp_path / 'ca.crt').write_bytes(make_pem('ca.crt'))

        response = client.post('/clouds/memory/clusters', json={'name': 'demo', 'assets_dir': str(tmp_path)})

        assert response.status_code == 422
        assert response.json()['error'] == 'MissingAssetError'

    def test_create_cluster_invalid_name(self, client, assets_dir):
        response = client.post('/clouds/memory/clusters', json={'name': 'Demo!', 'assets_dir': assets_dir})

        assert response.status_code == 422
        assert response.json()['error'] == 'InvalidSpecError'

    def test_create_cluster_invalid_label(self, client, assets_dir):
        payload = {'name': 'demo', 'labels': ['no-value'], 'assets_dir': assets_dir}

        response = client.post('/clouds/memory/clusters', json=payload)

        assert response.status_code == 422
        assert response.json()['error'] == 'RequestValidationError'

    def test_create_conflicting_cluster(self, client, cluster, assets_dir):
        payload = {'name': 'demo', 'internal': True, 'assets_dir': assets_dir}

        response = client.post('/clouds/memory/clusters', json=payload)

        assert response.status_code == 409

    def test_get_clusters(self, client, cluster):
        response = client.get('/clouds/memory/clusters')

        assert response.status_code == 200
        assert response.json() == [
            {
                'name': 'demo',
                'cloud_provider_name': 'memory',
                'internal': False,
                'kube_version': 'v1.7.2',
                'master_pool_size': 3,
                'compute_pools': ['compute-0', 'compute-1'],
            }
        ]

    def test_describe_cluster(self, client, cluster):
        response = client.get('/clouds/memory/clusters/demo')

        assert response.status_code == 200
        assert response.json() == cluster['state']

    def test_describe_missing_cluster(self, client):
        response = client.get('/clouds/memory/clusters/ghost')

        assert response.status_code == 404
        assert response.json()['error'] == 'NotFoundError'

    def test_delete_cluster(self, client, cluster):
        assert client.delete('/clouds/memory/clusters/demo').status_code == 204
        assert client.get('/clouds/memory/clusters/demo').status_code == 404

    def test_delete_missing_cluster(self, client):
        assert client.delete('/clouds/memory/clusters/ghost').status_code == 404


class TestPoolRoutes:
    def test_create_pool(self, client, cluster, assets_dir):
        payload = {'name': 'gpu', 'pool_size': 1, 'taints': ['gpu=true:NoExecute'], 'assets_dir': assets_dir}

        response = client.post('/clouds/memory/clusters/demo/pools', json=payload)

        assert response.status_code == 201
        assert response.json()['compute_pools']['gpu']['taints'] == {'gpu': ['true', 'NoExecute']}

    def test_create_pool_unknown_cluster(self, client, assets_dir):
        response = client.post('/clouds/memory/clusters/ghost/pools', json={'name': 'gpu', 'assets_dir': assets_dir})

        assert response.status_code == 404

    def test_describe_pool(self, client, cluster):
        response = client.get('/clouds/memory/clusters/demo/pools/compute-1')

        assert response.status_code == 200
        assert response.json()['size'] == 2
        assert response.json()['healthy_nodes'] == 2

    def test_update_pool(self, client, cluster):
        response = client.patch('/clouds/memory/clusters/demo/pools/compute-0', json={'pool_size': 5})

        assert response.status_code == 200
        assert response.json()['compute_pools']['compute-0']['size'] == 5

    def test_resize_keeps_labels_and_taints(self, client, cluster):
        response = client.patch('/clouds/memory/clusters/demo/pools/compute-0', json={'pool_size': 4})

        pool = response.json()['compute_pools']['compute-0']
        assert pool['size'] == 4
        assert pool['labels'] == {'tier': 'web'}
        assert pool['taints'] == {'dedicated': ['web', 'NoSchedule']}

    def test_empty_lists_clear_labels_and_taints(self, client, cluster):
        response = client.patch(
            '/clouds/memory/clusters/demo/pools/compute-0', json={'labels': [], 'taints': []}
        )

        pool = response.json()['compute_pools']['compute-0']
        assert pool['size'] == 2
        assert pool['labels'] == {}
        assert pool['taints'] == {}

    def test_internal_is_documented_as_fixed(self, client):
        schema = client.get('/openapi.json').json()['components']['schemas']['PoolUpdateSchema']

        assert 'Fixed at creation' in schema['properties']['internal']['description']

    def test_update_master_pool(self, client, cluster):
        response = client.patch('/clouds/memory/clusters/demo/pools/master', json={'scheduler_extra_args': '--v=4'})

        assert response.status_code == 200
        assert response.json()['master_pool']['size'] == 3

    @pytest.mark.parametrize(
        'payload',
        [
            {'internal': True},
            {'internal': False},
            {'cloud': 'gcp'},
            {'role': 'master'},
            {'labels': ['tier=a b']},
        ],
    )
    def test_update_immutable_field(self, client, cluster, payload):
        response = client.patch('/clouds/memory/clusters/demo/pools/compute-0', json=payload)

        assert response.status_code == 422
        assert response.json()['error'] == 'InvalidSpecError'

    def test_delete_pool(self, client, cluster):
        assert client.delete('/clouds/memory/clusters/demo/pools/compute-0').status_code == 204

        assert client.get('/clouds/memory/clusters/demo/pools/compute-0').status_code == 404
        assert list(client.get('/clouds/memory/clusters/demo').json()['compute_pools']) == ['compute-1']

    def test_delete_master_pool(self, client, cluster):
        response = client.delete('/clouds/memory/clusters/demo/pools/master')

        assert response.status_code == 422
        assert 'delete the cluster' in response.json()['message']
