# merci/cli.py
import click
from flask.cli import with_appcontext
from .extensions import db
from .model import CampaignTemplate
from .services import campaign_service

DEFAULT_TEMPLATES = [
    {"key": "percent_10", "label": "10% off everything", "type": "percent", "value": 10},
    {"key": "percent_15_capped", "label": "15% off, up to 5000", "type": "percent", "value": 15,
     "max_discount": 5000},
    {"key": "fixed_500_min_5000", "label": "500 off orders over 5000", "type": "absolute", "value": 500,
     "min_subtotal": 5000},
]

@click.command("create-campaign")
@click.option("--store-id", required=True)
@click.option("--code", required=True)
@click.option("--name", required=True)
@click.option("--type", "discount_type", type=click.Choice(["percent", "absolute"]), default="percent")
@click.option("--value", "discount_value", required=True)
@click.option("--valid-until", default=None, help="YYYY-MM-DD")
@with_appcontext
def create_campaign(store_id, code, name, discount_type, discount_value, valid_until):
    try:
        c = campaign_service.create_campaign(store_id, {
            "code": code, "name": name,
            "discount_type": discount_type, "discount_value": discount_value,
            "valid_until": valid_until,
        })
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"Campaign created: {c.id} {c.code}")

@click.command("seed-templates")
@with_appcontext
def seed_templates():
    added = 0
    for t in DEFAULT_TEMPLATES:
        if CampaignTemplate.query.filter_by(key=t["key"]).first():
            continue
        db.session.add(CampaignTemplate(**t))
        added += 1
    db.session.commit()
    click.echo(f"Templates added: {added}")

def register_cli(app):
    app.cli.add_command(create_campaign)
    app.cli.add_command(seed_templates)
