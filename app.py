#!/usr/bin/env python3
import logging

import aws_cdk as cdk

from config.environments import DEFAULT_CONFIG, resolve_account
from deployment.topology import build_topology

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

app = cdk.App()

# Explicit --context account=<id> wins over CDK_DEFAULT_ACCOUNT
account = resolve_account(override=app.node.try_get_context("account"))

build_topology(app, account, config=DEFAULT_CONFIG)

app.synth()
