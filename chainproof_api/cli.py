"""CLI commands for ChainProof API."""

import json

import click

from chainproof_api.certificates.service import CertificateService
from chainproof_api.db.base import Base
from chainproof_api.db.seed import seed_all
from chainproof_api.db.session import SessionLocal, engine
from chainproof_api.ledger.chain import HashChainLedger
from chainproof_api.settings import get_settings


@click.group()
def cli():
    """ChainProof API CLI."""
    pass


@cli.command("init-db")
def init_db():
    """Create all tables."""
    import chainproof_api.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    click.echo("✓ Database schema created.")


@cli.command()
def seed():
    """Seed initial data."""
    click.echo("Seeding initial data...")
    db = SessionLocal()
    try:
        raw_key = seed_all(db)
        click.echo("✓ Seed data created.")
        if raw_key:
            click.echo(f"  Demo API key (shown once): {raw_key}")
        else:
            click.echo("  Demo creator already exists; no new key issued.")
    except Exception as e:
        click.echo(f"✗ Error seeding data: {e}", err=True)
        db.rollback()
        raise SystemExit(1)
    finally:
        db.close()


@cli.command("verify-ledger")
@click.option("--network", default=None, help="Ledger network (defaults to LEDGER_NETWORK)")
def verify_ledger(network):
    """Check the anchor ledger's hash chain."""
    ledger = HashChainLedger(SessionLocal, network=network or get_settings().ledger_network)
    is_valid, error = ledger.verify_chain()
    if is_valid:
        click.echo(f"✓ Ledger chain for {ledger.network} is intact.")
    else:
        click.echo(f"✗ Ledger chain for {ledger.network} is broken: {error}", err=True)
        raise SystemExit(1)


@cli.command()
@click.argument("certificate_id")
@click.option("--hash", "content_hash", default=None, help="Content hash to compare against")
def verify(certificate_id, content_hash):
    """Verify a certificate by id."""
    db = SessionLocal()
    try:
        result = CertificateService(db).verify(certificate_id, content_hash=content_hash)
    finally:
        db.close()
    click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    if not result.valid:
        raise SystemExit(1)


@cli.command("generate-signing-key")
def generate_signing_key():
    """Create the local signing key at SIGNING_KEY_PATH if it is missing."""
    from chainproof_api.ledger.signer import LocalSigner

    signer = LocalSigner()
    click.echo(f"✓ Signing key {signer.get_key_id()} at {signer.key_path}")


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to API_HOST)")
@click.option("--port", default=None, type=int, help="Bind port (defaults to API_PORT)")
def serve(host, port):
    """Run the API server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "chainproof_api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
    )


if __name__ == "__main__":
    cli()
