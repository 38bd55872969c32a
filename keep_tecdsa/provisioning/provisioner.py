"""keep-tecdsa provisioner - funds, stakes and authorizes operators."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from web3 import Web3

from keep_tecdsa.chain import (
    BONDING_CONTRACT,
    FACTORY_CONTRACT,
    STAKING_CONTRACT,
    TOKEN_CONTRACT,
    SortitionPoolNotFoundError,
)

from .config_writer import ConfigWriter
from .models import (
    BONDING_DEPOSIT,
    FUNDING_AMOUNT,
    FUNDING_THRESHOLD,
    STAKE_AMOUNT,
    ClientConfigValues,
    OperatorAccount,
    OperatorResult,
    ProvisioningContext,
    ProvisioningResult,
    SortitionPoolRef,
)
from .utils import encode_delegation

if TYPE_CHECKING:
    from keep_tecdsa.chain import ChainClient

logger = logging.getLogger(__name__)


class Provisioner:
    """
    Runs the keep-tecdsa provisioning sequence.

    Steps, each gated on the previous one:
    1. Look up or create the application's sortition pool
    2. For every operator key file, in order:
       fund, deposit bonding value, stake, authorize the factory,
       authorize the sortition pool
    3. Write the client configuration

    Funding and staking check chain state first and are skipped when
    already applied. The bonding deposit and both authorizations are sent
    unconditionally. Nothing is rolled back if a later step fails.
    """

    def __init__(
        self,
        chain: ChainClient,
        context: ProvisioningContext,
        config_writer: ConfigWriter,
    ):
        """
        Initialize provisioner with all dependencies.

        Args:
            chain: Chain client with the owner key loaded
            context: Provisioning inputs
            config_writer: Writer for the client configuration
        """
        self._chain = chain
        self._context = context
        self._config_writer = config_writer

    @classmethod
    def create(cls, chain: ChainClient, context: ProvisioningContext) -> Provisioner:
        """Create provisioner with the default config writer."""
        return cls(
            chain=chain,
            context=context,
            config_writer=ConfigWriter(
                context.config_template_path, context.config_output_path
            ),
        )

    async def run(self) -> ProvisioningResult:
        """
        Run the full provisioning sequence.

        Returns:
            ProvisioningResult describing what was done

        Raises:
            ChainError: On any unexpected chain failure.
            ProvisioningError: On key file or config write failures.
        """
        logger.info("###########  Provisioning keep-tecdsa! ###########")

        logger.info(
            f"<<<<<<<<<<<< Create Sortition Pool for application: "
            f"{self._context.application_address} >>>>>>>>>>>>"
        )
        pool = await self.ensure_sortition_pool()
        result = ProvisioningResult(sortition_pool=pool)

        for key_file in self._context.operator_key_files:
            result.operators.append(await self.provision_operator(key_file, pool))

        logger.info("<<<<<<<<<<<< Creating keep-tecdsa Config File >>>>>>>>>>>>")
        result.config_path = self.write_config(result.operators)

        logger.info("########### keep-tecdsa Provisioning Complete! ###########")
        return result

    async def ensure_sortition_pool(self) -> SortitionPoolRef:
        """
        Get the application's sortition pool, creating it if missing.

        Only SortitionPoolNotFoundError leads to creation; any other lookup
        error propagates.
        """
        application = self._context.application_address

        try:
            pool_address = await self._chain.get_sortition_pool(application)
            created = False
            logger.info(f"sortition pool already exists for application: [{application}]")
        except SortitionPoolNotFoundError:
            await self._chain.transact(
                FACTORY_CONTRACT,
                "createSortitionPool",
                application,
                sender=self._context.owner_address,
            )
            logger.info(f"created sortition pool for application: [{application}]")
            pool_address = await self._chain.get_sortition_pool(application)
            created = True

        logger.info(f"sortition pool contract address: {pool_address}")
        return SortitionPoolRef(
            application_address=application,
            pool_address=pool_address,
            created=created,
        )

    async def provision_operator(
        self, key_file: Path, pool: SortitionPoolRef
    ) -> OperatorResult:
        """Fund, stake and authorize a single operator."""
        logger.info("<<<<<<<<<<<< Read operator address from key file >>>>>>>>>>>>")
        operator = OperatorAccount.from_key_file(key_file)
        result = OperatorResult(address=operator.address, key_file=operator.key_file)

        logger.info(
            f"<<<<<<<<<<<< Funding Operator Account {operator.address} >>>>>>>>>>>>"
        )
        result.funded = await self.fund_operator(operator)

        logger.info(
            f"<<<<<<<<<<<< Deposit to KeepBondingContract "
            f"{self._chain.contract_address(BONDING_CONTRACT)} >>>>>>>>>>>>"
        )
        await self.deposit_bonding_value(operator)

        logger.info(
            f"<<<<<<<<<<<< Staking Operator Account {operator.address} >>>>>>>>>>>>"
        )
        result.staked = await self.stake_operator(operator)

        logger.info(
            f"<<<<<<<<<<<< Authorizing Operator Contract "
            f"{self._chain.contract_address(FACTORY_CONTRACT)} >>>>>>>>>>>>"
        )
        await self.authorize_operator_contract(operator)

        logger.info(
            f"<<<<<<<<<<<< Authorizing Sortition Pool Contract "
            f"{pool.pool_address} >>>>>>>>>>>>"
        )
        await self.authorize_sortition_pool_contract(operator, pool)

        return result

    async def is_funded(self, address: str) -> bool:
        """Check if an address holds at least the funding threshold."""
        logger.debug(f"Checking if {address} has ether")
        return await self._chain.get_balance(address) >= FUNDING_THRESHOLD

    async def fund_operator(self, operator: OperatorAccount) -> bool:
        """
        Transfer the funding amount from the purse if the operator is unfunded.

        Returns:
            True if a transfer was sent
        """
        if await self.is_funded(operator.address):
            logger.info("Operator address is already funded, skipping")
            return False

        purse = self._context.purse_address
        ether = Web3.from_wei(FUNDING_AMOUNT, "ether")
        logger.info(
            f"Funding account {operator.address} with {ether} ether from purse {purse}"
        )
        await self._chain.send_value(purse, operator.address, FUNDING_AMOUNT)
        logger.info(f"Account {operator.address} funded!")
        return True

    async def deposit_bonding_value(self, operator: OperatorAccount) -> None:
        """Deposit the bonding value for the operator. Not idempotent."""
        await self._chain.transact(
            BONDING_CONTRACT,
            "deposit",
            operator.address,
            sender=self._context.purse_address,
            value=BONDING_DEPOSIT,
        )
        logger.info(
            f"deposited {BONDING_DEPOSIT} wei bonding value "
            f"for operator {operator.address}"
        )

    async def is_staked(self, address: str) -> bool:
        """Check if an address has a nonzero staked balance."""
        logger.debug(f"Checking if {address} is staked")
        staked_amount = await self._chain.call(STAKING_CONTRACT, "balanceOf", address)
        return staked_amount != 0

    async def stake_operator(self, operator: OperatorAccount) -> bool:
        """
        Delegate the stake amount to the operator unless already staked.

        Staking goes through KeepToken.approveAndCall, which hands the
        delegation payload to TokenStaking.

        Returns:
            True if a stake was delegated
        """
        if await self.is_staked(operator.address):
            logger.info("Operator account already staked, skipping")
            return False

        owner = self._context.owner_address
        logger.info(f"Staking 20000000 KEEP tokens on operator account {operator.address}")

        delegation = encode_delegation(
            owner, operator.address, self._context.authorizer_address
        )
        await self._chain.transact(
            TOKEN_CONTRACT,
            "approveAndCall",
            self._chain.contract_address(STAKING_CONTRACT),
            STAKE_AMOUNT,
            delegation,
            sender=owner,
        )
        logger.info("Staked!")
        return True

    async def authorize_operator_contract(self, operator: OperatorAccount) -> None:
        """Authorize the keep factory for the operator. No pre-check."""
        factory = self._chain.contract_address(FACTORY_CONTRACT)
        logger.info(
            f"Authorizing Operator Contract {factory} "
            f"for operator account {operator.address}"
        )
        await self._chain.transact(
            STAKING_CONTRACT,
            "authorizeOperatorContract",
            operator.address,
            factory,
            sender=self._context.authorizer_address,
        )
        logger.info("Authorized!")

    async def authorize_sortition_pool_contract(
        self, operator: OperatorAccount, pool: SortitionPoolRef
    ) -> None:
        """Authorize the sortition pool in KeepBonding for the operator. No pre-check."""
        logger.info(
            f"Authorizing Sortition Pool Contract {pool.pool_address} "
            f"for operator account {operator.address}"
        )
        await self._chain.transact(
            BONDING_CONTRACT,
            "authorizeSortitionPoolContract",
            operator.address,
            pool.pool_address,
            sender=self._context.authorizer_address,
        )
        logger.info("Authorized!")

    def write_config(self, operators: list[OperatorResult]) -> Path:
        """Write the client configuration for the provisioned operators."""
        values = ClientConfigValues(
            ws_url=self._context.ws_url,
            key_files=tuple(op.key_file for op in operators),
            factory_address=self._chain.contract_address(FACTORY_CONTRACT),
            sanctioned_applications=(self._context.application_address,),
            data_dir=self._context.data_dir,
        )
        return self._config_writer.write(values)
