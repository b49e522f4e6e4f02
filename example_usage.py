#!/usr/bin/env python3
"""
ARM REST SDK Example Usage

This script shows how to inspect a virtual machine and delete it together
with its network interfaces, public IPs and OS disk blobs.

Configuration is read from a .env file (or the environment), e.g.:
    ARMREST_SDK_SUBSCRIPTION_ID=00000000-0000-0000-0000-000000000000
    ARMREST_SDK_RESOURCE_GROUP=my-group
    ARMREST_SDK_TOKEN=<bearer token>
    ARMREST_SDK_LOGGING__LEVEL=INFO
"""

import argparse
import sys

from armrest_sdk import (
    ArmrestConfig,
    ArmRestClient,
    VirtualMachineService,
    DeletionOptions,
    ArmrestSDKException,
)
from armrest_sdk.logging import setup_logging, get_logger, logging_context


def main() -> int:
    parser = argparse.ArgumentParser(description="Delete a VM and its associated resources")
    parser.add_argument("vm_name")
    parser.add_argument("--group", help="Resource group (defaults to the configured one)")
    parser.add_argument("--dotenv", help="Path to a .env file")
    parser.add_argument("--with-nsg", action="store_true", help="Also delete network security groups")
    parser.add_argument("--with-storage-account", action="store_true",
                        help="Delete the whole storage account instead of the disk blobs")
    parser.add_argument("--dry-run", action="store_true", help="Only show the VM and its dependents")
    args = parser.parse_args()

    try:
        config = ArmrestConfig.from_dotenv(args.dotenv) if args.dotenv else ArmrestConfig.from_environment()
    except ArmrestSDKException as e:
        print(f"Failed to load configuration: {e}")
        return 1

    setup_logging(config.logging)
    logger = get_logger(__name__)

    group = args.group or config.resource_group

    with ArmRestClient(config) as client:
        vms = VirtualMachineService(client)

        try:
            vm = vms.get(args.vm_name, group)
            print(f"VM:        {vm.name} ({vm.vm_size}) in {vm.location}")
            for nic_id in vm.network_interface_ids:
                print(f"NIC:       {nic_id}")
            print(f"OS disk:   {vm.os_disk_uri or 'managed disk'}")

            if args.dry_run:
                return 0

            options = DeletionOptions(
                network_security_groups=args.with_nsg,
                storage_account=args.with_storage_account,
                verbose=True
            )

            with logging_context(logger=logger, operation=f"delete {vm.name}"):
                report = vms.delete_associated(args.vm_name, group, options, logger=logger)

        except ArmrestSDKException as e:
            logger.error(f"Operation failed: {e}")
            return 1

    for record in report.records:
        print(f"{record.outcome.value:8} {record.resource_type} {record.name}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
