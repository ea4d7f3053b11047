from keto.core.userdata.generator import REQUIRED_ASSETS, UserDataGenerator

__all__ = ['REQUIRED_ASSETS', 'UserDataGenerator']
