from gas_fee_api.tests.fixtures.services import *  # noqa: F401, F403
from gas_fee_api.tests.fixtures.web3_clients import *  # noqa: F401, F403
