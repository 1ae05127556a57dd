import dataclasses
import json
import os

import click

from config_manager import ConfigManager
from core.fields import Field, FieldError
from core.session_builder import SessionBuilder
from utils.output_utils import OutputLevel


def _split_pairs(pairs, option_name):
    """Turn ('name=value', ...) into a dict, lowercasing the names"""
    parsed = {}
    for pair in pairs:
        name, sep, value = pair.partition('=')
        if not sep or not name.strip():
            raise click.BadParameter(f"expected NAME=VALUE, got '{pair}'", param_hint=option_name)
        parsed[name.strip().lower()] = value
    return parsed


def _start_session(ctx):
    """Build a session bound to stdin, with prompts written to stderr"""
    builder = ctx.obj['BUILDER']
    session = builder.build(**ctx.obj.get('OPTIONS', {}))
    session.start(click.get_text_stream('stdin'), click.get_text_stream('stderr'))
    return session


def _unwrap(result):
    if not result.ok:
        raise click.ClickException(str(result.error))
    return result.value


@click.group()
@click.option('-c', '--conf', default=None, help='Path to a custom configuration file')
@click.option('--no-color', is_flag=True, default=False, help='Disable colored output')
@click.option('-q', '--quiet', is_flag=True, default=False, help='Only show warnings and errors besides the prompts')
@click.option('-l', '--label', default=None, help='Text written before each prompt')
@click.pass_context
def cli(ctx, conf, no_color, quiet, label):
    """
    Ask an operator for values on the terminal and print them as JSON.
    """
    ctx.ensure_object(dict)

    try:
        config_manager = ConfigManager(conf)
    except FileNotFoundError as e:
        raise click.ClickException(str(e))
    ctx.obj['CONFIG_MANAGER'] = config_manager
    ctx.obj['BUILDER'] = SessionBuilder(config_manager)

    options = {}
    if no_color:
        options['colors'] = False
    if quiet:
        options['output_level'] = OutputLevel.WARNING.name
    if label is not None:
        options['label'] = label
    ctx.obj['OPTIONS'] = options


@cli.command()
@click.argument('names', nargs=-1, required=True)
@click.option('-s', '--hidden', 'hidden', multiple=True, help='Read this field without echo (repeatable)')
@click.option('-d', '--default', 'defaults', multiple=True, help='NAME=VALUE default for a field (repeatable)')
@click.option('-v', '--validate', 'validators', multiple=True, help='NAME=REGEX the answer must match (repeatable)')
@click.option('-w', '--warning', 'warnings', multiple=True, help='NAME=TEXT shown when validation fails (repeatable)')
@click.option('-n', '--nested', is_flag=True, default=False, help='Expand dotted names into nested objects')
@click.pass_context
def ask(ctx, names, hidden, defaults, validators, warnings, nested):
    """
    prompt for each NAME in order and print the answers
    """
    defaults = _split_pairs(defaults, '--default')
    validators = _split_pairs(validators, '--validate')
    warnings = _split_pairs(warnings, '--warning')
    hidden = {h.lower() for h in hidden}

    try:
        session = _start_session(ctx)
        fields = []
        for name in names:
            key = name.lower()
            field = session.fields.get(key) or Field(name=key)
            changes = {}
            if key in hidden:
                changes['hidden'] = True
            if key in defaults:
                changes['default'] = defaults[key]
            if key in validators:
                changes['validator'] = validators[key]
            if key in warnings:
                changes['warning'] = warnings[key]
            # Registered so that shorthand lookups by name see the overrides
            fields.append(session.register_field(dataclasses.replace(field, **changes) if changes else field))
    except FieldError as e:
        raise click.ClickException(str(e))

    if nested:
        answers = _unwrap(session.add_properties({}, [f.name for f in fields]))
    else:
        answers = _unwrap(session.get(fields))
    click.echo(json.dumps(answers, indent=2))


@cli.command()
@click.argument('file', type=click.Path(dir_okay=False))
@click.argument('properties', nargs=-1, required=True)
@click.option('-o', '--output', default=None, help='Write the result here instead of back to FILE ("-" for stdout)')
@click.pass_context
def fill(ctx, file, properties, output):
    """
    prompt for the PROPERTIES missing from the JSON object in FILE
    """
    target = {}
    if os.path.exists(file):
        try:
            with open(file, 'r', encoding='utf-8') as f:
                target = json.load(f)
        except (OSError, ValueError) as e:
            raise click.ClickException(f"Could not read {file}: {e}")
        if not isinstance(target, dict):
            raise click.ClickException(f"{file} does not contain a JSON object")

    try:
        session = _start_session(ctx)
        target = _unwrap(session.add_properties(target, properties))
    except FieldError as e:
        raise click.ClickException(str(e))

    text = json.dumps(target, indent=2)
    destination = output or file
    if destination == '-':
        click.echo(text)
        return
    with open(destination, 'w', encoding='utf-8') as f:
        f.write(text + '\n')
    session.utils.output.success(f"Saved {destination}")


@cli.command()
@click.option('-d', '--details', is_flag=True, help="Show field details")
@click.pass_context
def list_fields(ctx, details):
    """
    list the fields known from the configuration
    """
    try:
        session = ctx.obj['BUILDER'].build(**ctx.obj.get('OPTIONS', {}))
    except FieldError as e:
        raise click.ClickException(str(e))

    if not session.fields:
        print("No fields configured")
        return

    for key in sorted(session.fields):
        field = session.fields[key]
        suffix = ' (hidden)' if field.hidden else ''
        print(f'{field.name}{suffix}')
        if details:
            if field.message:
                print(f'  message = {field.message}')
            if field.default is not None:
                print(f'  default = {field.default}')
            if field.warning:
                print(f'  warning = {field.warning}')
            for line in field.help:
                print(f'  help    = {line}')


# take care of business
if __name__ == "__main__":
    cli(obj={})
