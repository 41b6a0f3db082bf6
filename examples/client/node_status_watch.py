"""
Node status example of IdentityClient.

This example logs in, polls the business lightning node until it is running
and initializes the node wallet the first time it asks for it.
"""

import logging
import os
import sys
import time

from musqet import ClientConfig, IdentityClient
from musqet.common.models import NodeStatus


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    client = IdentityClient(ClientConfig(log_level=logging.INFO))
    if not client.login(os.environ["MUSQET_EMAIL"], os.environ["MUSQET_PASSPHRASE"]):
        logger.error("Login failed: %s", client.errors[-1])
        sys.exit(1)

    for _i in range(30):
        snapshot = client.get_node_status()
        if snapshot is None:
            logger.error("Status check failed: %s", client.errors[-1])
            sys.exit(1)
        logger.info(
            "Node %s: %s (%s/%s)",
            snapshot.node_id or "pending",
            snapshot.status.value,
            snapshot.block_height,
            snapshot.block_tip,
        )
        if snapshot.status == NodeStatus.WAITING_INIT and not client.init_node():
            logger.error("Node initialization failed: %s", client.errors[-1])
            sys.exit(1)
        if snapshot.status == NodeStatus.RUNNING:
            break
        time.sleep(10)


if __name__ == "__main__":
    main()
