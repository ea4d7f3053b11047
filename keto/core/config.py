import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(Path(__file__).parent.parent.parent.absolute(), '.env'))

VERSION = '0.1.0'

DEBUG = os.getenv('KETO_DEBUG', '').lower() in ('1', 'true', 'yes')

DEFAULT_KUBE_VERSION = os.getenv('KETO_DEFAULT_KUBE_VERSION', 'v1.7.2')
DEFAULT_COREOS_VERSION = os.getenv('KETO_DEFAULT_COREOS_VERSION', 'stable')
DEFAULT_DISK_SIZE_GB = int(os.getenv('KETO_DEFAULT_DISK_SIZE_GB', '10'))
DEFAULT_COMPUTE_POOL_SIZE = int(os.getenv('KETO_DEFAULT_COMPUTE_POOL_SIZE', '1'))
DEFAULT_MASTER_POOL_SIZE = 1

# seconds, 0 disables the deadline
PROVIDER_CALL_TIMEOUT = float(os.getenv('KETO_PROVIDER_TIMEOUT', '600')) or None

PATH_TO_TEMPLATES = Path(Path(__file__).absolute().parent, 'templates')
