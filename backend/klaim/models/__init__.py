from klaim.models.user import User
from klaim.models.asset import Asset
