"""
Flask CLI Commands for Database Management and Campaigns
Run with: flask db-manage init, flask campaigns apply, etc.
"""

import time

import click
from flask import current_app
from flask.cli import with_appcontext
from tabulate import tabulate

from gnb_transfer.db_init import init_database, clear_database, reset_database
from gnb_transfer.services.campaigns import CampaignScheduler, apply_active_campaigns, get_running_rules
from gnb_transfer.utils.dates import utcnow


@click.group()
def db_commands():
    """Database management commands"""
    pass


@db_commands.command('init')
@click.option('--no-sample-data', is_flag=True, help='Skip creating sample data')
@with_appcontext
def init_db_command(no_sample_data):
    """Initialize the database with tables and optional sample data"""
    try:
        init_database(with_sample_data=not no_sample_data)
        click.echo('✅ Database initialized successfully!')
    except Exception as e:
        click.echo(f'❌ Error initializing database: {str(e)}', err=True)
        raise


@db_commands.command('reset')
@click.confirmation_option(prompt='⚠️  This will delete all data. Are you sure?')
@with_appcontext
def reset_db_command():
    """Reset the database (drop all tables and recreate with sample data)"""
    try:
        reset_database()
        click.echo('✅ Database reset successfully!')
    except Exception as e:
        click.echo(f'❌ Error resetting database: {str(e)}', err=True)
        raise


@db_commands.command('clear')
@click.confirmation_option(prompt='⚠️  This will delete all tables. Are you sure?')
@with_appcontext
def clear_db_command():
    """Clear all database tables"""
    try:
        clear_database()
        click.echo('✅ Database cleared successfully!')
    except Exception as e:
        click.echo(f'❌ Error clearing database: {str(e)}', err=True)
        raise


@click.group()
def campaign_commands():
    """Campaign rule commands"""
    pass


@campaign_commands.command('apply')
@with_appcontext
def apply_campaigns_command():
    """Apply running campaign rules to tour discounts now"""
    result = apply_active_campaigns()
    click.echo(
        f'✅ {result.active_campaigns} active campaigns: {result.tours_updated} tours updated, '
        f'{result.tours_discounted} discounted'
    )
    if result.tours_failed:
        click.echo(f'⚠️ {result.tours_failed} tours could not be updated, see the log', err=True)


@campaign_commands.command('schedule')
@click.option('--interval', type=int, default=None, help='Seconds between runs (default: config)')
@with_appcontext
def schedule_campaigns_command(interval):
    """Run the campaign scheduler in the foreground until interrupted"""
    app = current_app._get_current_object()
    scheduler = CampaignScheduler(app, interval=interval or app.config['CAMPAIGN_SCHEDULER_INTERVAL'])
    scheduler.start()
    click.echo(f'⏰ Applying campaign rules every {scheduler.interval}s, press Ctrl+C to stop')
    try:
        while scheduler.running:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()
    click.echo('✅ Campaign scheduler stopped')


@campaign_commands.command('list')
@with_appcontext
def list_campaigns_command():
    """Show campaign rules running right now"""
    rules = get_running_rules(utcnow())
    if not rules:
        click.echo('No active campaigns')
        return

    rows = [
        (r.name, r.condition_type.value, r.target, f'{r.discount_rate}%', r.end_date.strftime('%Y-%m-%d'), r.applied_count)
        for r in rules
    ]
    click.echo(tabulate(rows, headers=['Name', 'Condition', 'Target', 'Rate', 'Ends', 'Applied'], tablefmt='simple'))


def register_commands(app):
    """Register CLI commands with the Flask app"""
    app.cli.add_command(db_commands, name='db-manage')
    app.cli.add_command(campaign_commands, name='campaigns')
