import json
import re

import click
from flask.cli import with_appcontext

from schooldomain.domain.errors import RegistryError
from schooldomain.services import registry


# Legacy data files are CommonJS modules: `module.exports = [ ... ];`
_MODULE_EXPORTS_RE = re.compile(r'^\s*module\.exports\s*=\s*(?P<body>.*?)\s*;?\s*$', re.DOTALL)


def load_registry_document(text: str) -> list:
    """Parse a registry dump: a JSON array or a `module.exports = [...]` file."""
    match = _MODULE_EXPORTS_RE.match(text)
    body = match.group('body') if match else text
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f'Registry file is not valid JSON: {exc}')
    if not isinstance(data, list):
        raise click.ClickException('Registry file must contain a JSON array of schools.')
    return data


@click.command('export-registry')
@click.option('--output', '-o', type=click.Path(dir_okay=False, writable=True), default=None,
              help='Write to this file instead of stdout')
@with_appcontext
def export_registry_command(output: str) -> None:
    """Dump every school and its subdomains as a JSON array."""
    records = [school.to_dict() for school in registry.all_records()]
    content = json.dumps(records, indent=2)

    if not output:
        click.echo(content)
        return

    with open(output, 'w', encoding='utf-8') as fh:
        fh.write(content + '\n')
    click.echo(f'Exported {len(records)} school(s) to {output}')


@click.command('import-registry')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_registry_command(path: str) -> None:
    """Import schools from a JSON array or a legacy Data.js file."""
    with open(path, encoding='utf-8') as fh:
        records = load_registry_document(fh.read())

    try:
        counts = registry.import_records(records)
    except RegistryError as exc:
        raise click.ClickException(exc.message)

    click.echo(
        f"Imported {counts['imported']} school(s); "
        f"skipped {counts['skipped']} existing; {counts['invalid']} invalid."
    )


@click.command('list-schools')
@with_appcontext
def list_schools_command() -> None:
    """List registered domains with plan and subdomain count."""
    schools = registry.all_records()
    if not schools:
        click.echo('No schools registered.')
        return

    for school in schools:
        click.echo(f'{school.domain:<8} {school.plan:<13} {len(school.subdomains):>3}  {school.school}')
