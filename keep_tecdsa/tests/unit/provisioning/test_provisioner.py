"""Unit tests for Provisioner."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, call

import pytest
import toml
from web3 import Web3

from keep_tecdsa.chain import (
    BONDING_CONTRACT,
    FACTORY_CONTRACT,
    STAKING_CONTRACT,
    TOKEN_CONTRACT,
    ContractCallError,
    SortitionPoolNotFoundError,
    TransactionFailedError,
)
from keep_tecdsa.provisioning import (
    BONDING_DEPOSIT,
    FUNDING_AMOUNT,
    STAKE_AMOUNT,
    KeyFileError,
    OperatorAccount,
    Provisioner,
    ProvisioningContext,
    SortitionPoolRef,
    encode_delegation,
)


@pytest.fixture
def provisioner(mock_chain: MagicMock, context: ProvisioningContext) -> Provisioner:
    return Provisioner.create(mock_chain, context)


@pytest.fixture
def operator(operator_addresses: list[str], key_files: list[Path]) -> OperatorAccount:
    return OperatorAccount(address=operator_addresses[0], key_file=key_files[0])


def _transactions(mock_chain: MagicMock, contract: str, method: str) -> list:
    return [
        c
        for c in mock_chain.transact.await_args_list
        if c.args[0] == contract and c.args[1] == method
    ]


class TestEnsureSortitionPool:
    """Tests for sortition pool lookup/creation."""

    async def test_existing_pool_is_reused(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
        application_address: str,
        pool_address: str,
    ) -> None:
        """Existing pool is returned unchanged and nothing is created."""
        pool = await provisioner.ensure_sortition_pool()

        assert pool == SortitionPoolRef(
            application_address=application_address,
            pool_address=pool_address,
            created=False,
        )
        mock_chain.get_sortition_pool.assert_awaited_once_with(application_address)
        mock_chain.transact.assert_not_awaited()

    async def test_missing_pool_is_created_once_and_requeried(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
        application_address: str,
        owner_address: str,
        pool_address: str,
    ) -> None:
        """Pool not found triggers exactly one creation and a second lookup."""
        mock_chain.get_sortition_pool.side_effect = [
            SortitionPoolNotFoundError("not found"),
            pool_address,
        ]

        pool = await provisioner.ensure_sortition_pool()

        assert pool.pool_address == pool_address
        assert pool.created is True
        mock_chain.transact.assert_awaited_once_with(
            FACTORY_CONTRACT,
            "createSortitionPool",
            application_address,
            sender=owner_address,
        )
        assert mock_chain.get_sortition_pool.await_count == 2

    async def test_other_lookup_error_propagates(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
    ) -> None:
        """Lookup errors other than not-found are fatal and never create a pool."""
        mock_chain.get_sortition_pool.side_effect = ContractCallError(
            "reverted", reason="Caller is not the owner"
        )

        with pytest.raises(ContractCallError):
            await provisioner.ensure_sortition_pool()

        mock_chain.transact.assert_not_awaited()


class TestFundOperator:
    """Tests for operator funding."""

    async def test_funded_operator_gets_no_transfer(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
        operator: OperatorAccount,
    ) -> None:
        mock_chain.get_balance.return_value = Web3.to_wei(1, "ether")

        funded = await provisioner.fund_operator(operator)

        assert funded is False
        mock_chain.send_value.assert_not_awaited()

    async def test_unfunded_operator_gets_one_transfer(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
        operator: OperatorAccount,
        owner_address: str,
    ) -> None:
        mock_chain.get_balance.return_value = Web3.to_wei(1, "ether") - 1

        funded = await provisioner.fund_operator(operator)

        assert funded is True
        mock_chain.send_value.assert_awaited_once_with(
            owner_address, operator.address, FUNDING_AMOUNT
        )
        assert FUNDING_AMOUNT == Web3.to_wei(10, "ether")

    async def test_balance_errors_propagate(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
        operator: OperatorAccount,
    ) -> None:
        mock_chain.get_balance.side_effect = ContractCallError("rpc error")

        with pytest.raises(ContractCallError):
            await provisioner.fund_operator(operator)

        mock_chain.send_value.assert_not_awaited()


class TestStakeOperator:
    """Tests for operator staking."""

    async def test_staked_operator_is_not_staked_again(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
        operator: OperatorAccount,
    ) -> None:
        mock_chain.call.return_value = 1

        staked = await provisioner.stake_operator(operator)

        assert staked is False
        mock_chain.call.assert_awaited_once_with(
            STAKING_CONTRACT, "balanceOf", operator.address
        )
        mock_chain.transact.assert_not_awaited()

    async def test_unstaked_operator_is_delegated_stake(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
        operator: OperatorAccount,
        owner_address: str,
        contract_addresses: dict[str, str],
    ) -> None:
        staked = await provisioner.stake_operator(operator)

        assert staked is True
        mock_chain.transact.assert_awaited_once_with(
            TOKEN_CONTRACT,
            "approveAndCall",
            contract_addresses[STAKING_CONTRACT],
            20_000_000 * 10**18,
            encode_delegation(owner_address, operator.address, owner_address),
            sender=owner_address,
        )
        assert STAKE_AMOUNT == 20_000_000 * 10**18


class TestUnguardedSteps:
    """Deposit and authorizations are sent without pre-checks."""

    async def test_deposit_sends_bonding_value_from_purse(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
        operator: OperatorAccount,
        owner_address: str,
    ) -> None:
        await provisioner.deposit_bonding_value(operator)
        await provisioner.deposit_bonding_value(operator)

        expected = call(
            BONDING_CONTRACT,
            "deposit",
            operator.address,
            sender=owner_address,
            value=Web3.to_wei(50, "ether"),
        )
        assert mock_chain.transact.await_args_list == [expected, expected]
        assert BONDING_DEPOSIT == Web3.to_wei(50, "ether")

    async def test_authorize_operator_contract_uses_factory(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
        operator: OperatorAccount,
        owner_address: str,
        contract_addresses: dict[str, str],
    ) -> None:
        await provisioner.authorize_operator_contract(operator)

        mock_chain.transact.assert_awaited_once_with(
            STAKING_CONTRACT,
            "authorizeOperatorContract",
            operator.address,
            contract_addresses[FACTORY_CONTRACT],
            sender=owner_address,
        )

    async def test_authorize_sortition_pool_uses_pool_address(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
        operator: OperatorAccount,
        owner_address: str,
        application_address: str,
        pool_address: str,
    ) -> None:
        pool = SortitionPoolRef(application_address, pool_address)

        await provisioner.authorize_sortition_pool_contract(operator, pool)

        mock_chain.transact.assert_awaited_once_with(
            BONDING_CONTRACT,
            "authorizeSortitionPoolContract",
            operator.address,
            pool_address,
            sender=owner_address,
        )


class TestRun:
    """Tests for the full provisioning sequence."""

    async def test_fresh_chain_end_to_end(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
        context: ProvisioningContext,
        operator_addresses: list[str],
        key_files: list[Path],
        pool_address: str,
        contract_addresses: dict[str, str],
        application_address: str,
    ) -> None:
        """Three fresh operators and no pool: every step runs once per operator."""
        mock_chain.get_sortition_pool.side_effect = [
            SortitionPoolNotFoundError("not found"),
            pool_address,
        ]

        result = await provisioner.run()

        assert len(_transactions(mock_chain, FACTORY_CONTRACT, "createSortitionPool")) == 1
        assert mock_chain.send_value.await_count == 3
        assert all(c.args[2] == FUNDING_AMOUNT for c in mock_chain.send_value.await_args_list)

        deposits = _transactions(mock_chain, BONDING_CONTRACT, "deposit")
        assert [c.args[2] for c in deposits] == operator_addresses
        assert all(c.kwargs["value"] == BONDING_DEPOSIT for c in deposits)

        stakes = _transactions(mock_chain, TOKEN_CONTRACT, "approveAndCall")
        assert len(stakes) == 3
        assert all(c.args[3] == STAKE_AMOUNT for c in stakes)

        assert len(_transactions(mock_chain, STAKING_CONTRACT, "authorizeOperatorContract")) == 3
        pool_auths = _transactions(mock_chain, BONDING_CONTRACT, "authorizeSortitionPoolContract")
        assert [c.args[3] for c in pool_auths] == [pool_address] * 3

        assert result.sortition_pool.created is True
        assert [op.address for op in result.operators] == operator_addresses
        assert all(op.funded and op.staked for op in result.operators)

        assert result.config_path == context.config_output_path
        written = toml.load(context.config_output_path)
        assert written["ethereum"]["account"]["KeyFile"] == [str(p) for p in key_files]
        assert (
            written["ethereum"]["ContractAddresses"]["BondedECDSAKeepFactory"]
            == contract_addresses[FACTORY_CONTRACT]
        )
        assert written["SanctionedApplications"]["Addresses"] == [application_address]

    async def test_provisioned_chain_skips_funding_and_staking(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
    ) -> None:
        """Re-running against funded and staked operators only sends unguarded steps."""
        mock_chain.get_balance.return_value = Web3.to_wei(5, "ether")
        mock_chain.call.return_value = STAKE_AMOUNT

        result = await provisioner.run()

        mock_chain.send_value.assert_not_awaited()
        assert _transactions(mock_chain, TOKEN_CONTRACT, "approveAndCall") == []
        assert len(_transactions(mock_chain, BONDING_CONTRACT, "deposit")) == 3
        assert not any(op.funded or op.staked for op in result.operators)

    async def test_pool_lookup_failure_runs_no_operator_steps(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
        context: ProvisioningContext,
    ) -> None:
        mock_chain.get_sortition_pool.side_effect = ContractCallError("boom", reason="boom")

        with pytest.raises(ContractCallError):
            await provisioner.run()

        mock_chain.get_balance.assert_not_awaited()
        mock_chain.send_value.assert_not_awaited()
        mock_chain.transact.assert_not_awaited()
        assert not context.config_output_path.exists()

    async def test_failed_step_stops_sequence_without_config(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
        context: ProvisioningContext,
    ) -> None:
        """A reverted transaction aborts the run; earlier steps are not rolled back."""
        mock_chain.transact.side_effect = TransactionFailedError("reverted", tx_hash="0x01")

        with pytest.raises(TransactionFailedError):
            await provisioner.run()

        assert mock_chain.send_value.await_count == 1
        assert not context.config_output_path.exists()

    async def test_bad_key_file_aborts(
        self,
        provisioner: Provisioner,
        mock_chain: MagicMock,
        key_files: list[Path],
    ) -> None:
        key_files[1].write_text("{}")

        with pytest.raises(KeyFileError):
            await provisioner.run()

        # First operator completed before the second key file was read
        assert mock_chain.send_value.await_count == 1
