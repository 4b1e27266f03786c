"""AuditX command line interface."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from ..core.config import get_effective_config
from ..models.audit import AuditStatus, NormalizedAudit

console = Console(stderr=True)

STATUS_CHOICES = [s.value for s in AuditStatus]


def _dump(audits: list[NormalizedAudit]) -> str:
    payload = [a.model_dump(mode="json", by_alias=True) for a in audits]
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _load_json(path: Path) -> list[dict]:
    try:
        data = json.loads(path.read_text(encoding="utf-8-sig"))
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Cannot read {path}: {e}") from e
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [d for d in data if isinstance(d, dict)]
    raise click.ClickException(f"{path} must contain a JSON object or a list of objects")


@click.group()
@click.option("--project", "-p", type=click.Path(exists=True, file_okay=False), default=".",
              help="Project directory holding .auditx/config.yaml")
@click.option("--timeout", type=int, help="HTTP timeout in seconds")
@click.pass_context
def cli(ctx: click.Context, project: str, timeout: Optional[int]) -> None:
    """AuditX - audit review tooling."""
    overrides = {"http": {"timeout_seconds": timeout}} if timeout else None
    ctx.ensure_object(dict)
    ctx.obj["project"] = Path(project)
    ctx.obj["config"] = get_effective_config(Path(project), cli_overrides=overrides)


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create .auditx/config.yaml in the project."""
    from ..core.config import write_default_config

    path = write_default_config(ctx.obj["project"])
    console.print(f"  [green]Initialized[/green] {path}")


@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Show which external services are configured."""
    from ..services.document_store import DocumentStoreClient
    from ..services.evidence_upload import EvidenceUploader
    from ..services.rag import RagClient

    config = ctx.obj["config"]
    rag = RagClient(config).check_configuration()
    rows = [
        ("document store", DocumentStoreClient(config).is_configured()),
        ("blob store", EvidenceUploader(config).is_configured()),
        ("search", rag.search_configured),
        ("openai", rag.openai_configured),
    ]
    for name, ok in rows:
        tag = "[green]OK[/green]" if ok else "[yellow]NOT SET[/yellow]"
        console.print(f"  {tag} {name}")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output-format", "-f", type=click.Choice(["markdown", "json"]), default="markdown")
@click.option("--status", type=click.Choice(STATUS_CHOICES), help="Manual status override")
def normalize(file: str, output_format: str, status: Optional[str]) -> None:
    """Normalize audit documents from a local JSON file."""
    from ..core.normalize import apply_status_override, normalize_audit
    from ..exceptions import MissingIdentityError
    from ..formatters.markdown import render_audit_report

    audits: list[NormalizedAudit] = []
    for doc in _load_json(Path(file)):
        try:
            audit = normalize_audit(doc)
        except MissingIdentityError as e:
            console.print(f"  [red]SKIP[/red] {e}")
            continue
        if status:
            audit = apply_status_override(audit, status)
        audits.append(audit)

    if not audits:
        console.print("  [red]ERROR[/red] No addressable audit records")
        sys.exit(1)

    if output_format == "json":
        click.echo(_dump(audits))
    else:
        click.echo("\n\n".join(render_audit_report(a) for a in audits))


@cli.command()
@click.option("--output-format", "-f", type=click.Choice(["markdown", "json"]), default="markdown")
@click.option("--filter-status", type=click.Choice(["all"] + STATUS_CHOICES), default="all")
@click.pass_context
def fetch(ctx: click.Context, output_format: str, filter_status: str) -> None:
    """Fetch audits from the document store and show the queue."""
    from ..core.state import Action, ActionType, DashboardState, filtered_audits, reduce
    from ..formatters.markdown import render_audit_table
    from ..services.document_store import DocumentStoreClient, LoadState, load_audits

    client = DocumentStoreClient(ctx.obj["config"])
    if not client.is_configured():
        console.print("  [yellow]WARN[/yellow] Document store token not configured")

    result = asyncio.run(load_audits(client))
    if result.state == LoadState.ERROR:
        console.print(f"  [red]ERROR[/red] {result.error}")
        sys.exit(1)
    if result.skipped:
        console.print(f"  [yellow]WARN[/yellow] Skipped {result.skipped} record(s) without an id")
    if result.state == LoadState.EMPTY:
        console.print("  [dim]INFO[/dim] No audits found")

    state = reduce(DashboardState(), Action(type=ActionType.SET_AUDITS, payload=result.audits))
    state = reduce(state, Action(type=ActionType.SET_FILTER, payload=filter_status))
    audits = filtered_audits(state)

    if output_format == "json":
        click.echo(_dump(audits))
    else:
        click.echo(render_audit_table(audits))


@cli.command()
@click.argument("question")
@click.option("--audit-file", type=click.Path(exists=True, dir_okay=False),
              help="JSON audit document to use as context")
@click.pass_context
def ask(ctx: click.Context, question: str, audit_file: Optional[str]) -> None:
    """Ask a question against the audit evidence index."""
    from ..core.normalize import normalize_audit
    from ..exceptions import MissingIdentityError
    from ..services.rag import RagClient

    audit = None
    if audit_file:
        docs = _load_json(Path(audit_file))
        try:
            audit = normalize_audit(docs[0]) if docs else None
        except MissingIdentityError as e:
            raise click.ClickException(str(e)) from e

    client = RagClient(ctx.obj["config"])
    answer = asyncio.run(client.query(question, audit))

    if answer.error:
        console.print(f"  [red]ERROR[/red] {answer.error_message or answer.content}")
        sys.exit(1)

    click.echo(answer.content)
    if answer.sources:
        click.echo("")
        click.echo("Sources:")
        for src in answer.sources:
            click.echo(f"  [{src.source_number}] {src.document_name}")
    console.print(
        f"  [dim]{answer.retrieval_count} document(s), {answer.processing_time_ms} ms[/dim]"
    )


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--audit-id", type=str, help="Audit folder for the uploaded files")
@click.pass_context
def upload(ctx: click.Context, files: tuple[str, ...], audit_id: Optional[str]) -> None:
    """Upload evidence files to the blob store."""
    from ..models.upload import UploadItem, UploadStatus
    from ..services.evidence_upload import EvidenceUploader, prepare_uploads

    uploader = EvidenceUploader(ctx.obj["config"])
    items = prepare_uploads(Path(f) for f in files)

    def on_update(item: UploadItem) -> None:
        if item.status == UploadStatus.UPLOADING and item.progress == 0:
            console.print(f"  [dim]...[/dim] {item.name}")

    results = asyncio.run(uploader.upload_all(items, audit_id, on_update=on_update))

    failed = 0
    for item in results:
        if item.status == UploadStatus.SUCCESS:
            console.print(f"  [green]Uploaded[/green] {item.name}")
            click.echo(item.uploaded_url)
        else:
            failed += 1
            console.print(f"  [red]Failed[/red] {item.name}: {item.error_message}")

    if failed:
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
