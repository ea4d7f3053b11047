from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

CA_CERT = 'ca.crt'
CA_KEY = 'ca.key'
APISERVER_CERT = 'apiserver.crt'
APISERVER_KEY = 'apiserver.key'
KUBELET_CERT = 'kubelet.crt'
KUBELET_KEY = 'kubelet.key'

KNOWN_ASSETS = (CA_CERT, CA_KEY, APISERVER_CERT, APISERVER_KEY, KUBELET_CERT, KUBELET_KEY)


@dataclass(frozen=True)
class AssetBundle:
    """Read-only certificate and key material, keyed by file name.

    Assets are supplied once when the cluster is created and are never
    regenerated here.
    """

    files: Mapping[str, bytes] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, 'files', MappingProxyType(dict(self.files)))

    def get(self, name: str) -> bytes | None:
        return self.files.get(name) or None

    def missing(self, names: Iterable[str]) -> list[str]:
        return [name for name in names if not self.get(name)]

    @classmethod
    def from_directory(cls, assets_dir: str | Path) -> 'AssetBundle':
        path = Path(assets_dir).expanduser()

        if not path.is_dir():
            raise FileNotFoundError(f'Assets directory not found at: {path}')

        return cls({name: (path / name).read_bytes() for name in KNOWN_ASSETS if (path / name).is_file()})
