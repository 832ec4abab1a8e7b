"""
Dualchain RPC CLI

Command-line access to the EVM JSON-RPC endpoint and the raw transaction
builder.

Usage:
    dualchain-rpc [--url URL] chain-id
    dualchain-rpc [--url URL] block-number
    dualchain-rpc [--url URL] balance <address>
    dualchain-rpc [--url URL] receipt <tx_hash>
    dualchain-rpc [--url URL] send-raw <signed_hex>
    dualchain-rpc [--url URL] sign-tx --to ADDRESS [--data HEX] [--value WEI] [--key KEY]
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional

import click

from .. import __version__
from ..config import load_config
from ..exceptions import ConfigurationError, DualChainException
from ..rpc import EvmRpcClient
from ..transactions import LocalAccountSigner, TransactionBuilder


def _run(ctx: click.Context, action: Callable[[EvmRpcClient], Awaitable[Any]]) -> Any:
    """Run ``action`` against a fresh client, mapping harness errors to click errors."""
    url = ctx.obj["url"]
    timeout = ctx.obj["timeout"]

    async def runner():
        async with EvmRpcClient(url, timeout=timeout) as client:
            return await action(client)

    try:
        return asyncio.run(runner())
    except (DualChainException, ValueError) as e:
        raise click.ClickException(str(e))


@click.group()
@click.version_option(version=__version__, prog_name="dualchain-rpc")
@click.option("--url", "-u", default=None, help="EVM JSON-RPC endpoint (default: from config)")
@click.option("--config", "-c", "config_path", type=click.Path(), default=None, help="Path to dualchain.toml")
@click.pass_context
def cli(ctx: click.Context, url: Optional[str], config_path: Optional[str]):
    """Dualchain EVM RPC Command Line Interface"""
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        raise click.ClickException(str(e))
    ctx.ensure_object(dict)
    ctx.obj["url"] = url or config.rpc.evm_url
    ctx.obj["timeout"] = config.rpc.timeout
    ctx.obj["chain_id"] = config.rpc.chain_id


@cli.command("chain-id")
@click.pass_context
def chain_id_cmd(ctx: click.Context):
    """Print the chain id."""
    click.echo(_run(ctx, lambda client: client.chain_id()))


@cli.command("block-number")
@click.pass_context
def block_number_cmd(ctx: click.Context):
    """Print the latest block height."""
    click.echo(_run(ctx, lambda client: client.get_block_number()))


@cli.command("balance")
@click.argument("address")
@click.option("--block", "block_tag", default="latest", help="Block tag or height")
@click.pass_context
def balance_cmd(ctx: click.Context, address: str, block_tag: str):
    """Print the wei balance of ADDRESS."""
    tag = int(block_tag) if block_tag.isdigit() else block_tag
    click.echo(_run(ctx, lambda client: client.get_balance(address, tag)))


@cli.command("receipt")
@click.argument("tx_hash")
@click.pass_context
def receipt_cmd(ctx: click.Context, tx_hash: str):
    """Print the receipt of TX_HASH as JSON."""
    receipt = _run(ctx, lambda client: client.get_transaction_receipt(tx_hash))
    if receipt is None:
        raise click.ClickException(f"No receipt for {tx_hash}")
    click.echo(json.dumps(receipt, indent=2))


@cli.command("send-raw")
@click.argument("signed_tx")
@click.pass_context
def send_raw_cmd(ctx: click.Context, signed_tx: str):
    """Broadcast SIGNED_TX and print its hash."""
    click.echo(_run(ctx, lambda client: client.send_raw_transaction(signed_tx)))


@cli.command("sign-tx")
@click.option("--to", "to_address", required=True, help="Recipient or contract address")
@click.option("--data", default="0x", show_default=True, help="Call data")
@click.option("--value", default=0, type=int, show_default=True, help="Value in wei")
@click.option("--key", envvar="DUALCHAIN_PRIVATE_KEY", required=True, help="Private key (or DUALCHAIN_PRIVATE_KEY)")
@click.pass_context
def sign_tx_cmd(ctx: click.Context, to_address: str, data: str, value: int, key: str):
    """Build, estimate and sign a transaction; prints the signed hex."""
    try:
        signer = LocalAccountSigner(key)
    except ValueError as e:
        raise click.ClickException(f"Invalid private key: {e}")

    async def sign(client: EvmRpcClient) -> str:
        # EIP-155 replay protection needs the chain id; ask the node if unset
        chain_id = ctx.obj["chain_id"] or await client.chain_id()
        return await TransactionBuilder(client).sign(
            signer, to_address, data, value=value, chain_id=chain_id
        )

    click.echo(_run(ctx, sign))


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
