from flask import request, current_app
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import desc

from gnb_transfer.api.admin import admin_bp
from gnb_transfer.models import CampaignRule, Tour
from gnb_transfer.models.enums import ConditionType
from gnb_transfer.extensions import db
from gnb_transfer.services.campaigns import apply_active_campaigns, clear_rule_from_tours
from gnb_transfer.utils.decorators import admin_required
from gnb_transfer.utils.api_response import APIResponse
from gnb_transfer.utils.audit_logging import AuditLogger
from gnb_transfer.utils.dates import utcnow
from gnb_transfer.utils.toggles import make_toggle_view
from gnb_transfer.api.admin.schemas import AdminSchemas

# ===== CAMPAIGN RULE MANAGEMENT =====

@admin_bp.route('/campaigns', methods=['GET'])
@admin_required()
def get_campaigns():
    """
    Get paginated list of campaign rules

    Query params:
        - page, perPage: Pagination
        - active: 'true' / 'false'
        - conditionType: Filter by condition type
        - running: 'true' for rules whose window contains now
    """
    try:
        args = request.args.to_dict()
        pagination = AdminSchemas.validate_pagination(args)

        query = CampaignRule.query

        if 'active' in args:
            query = query.filter_by(active=args['active'].lower() == 'true')

        if args.get('conditionType'):
            try:
                query = query.filter_by(condition_type=ConditionType(args['conditionType']))
            except ValueError:
                return APIResponse.validation_error({'conditionType': 'Unknown condition type'})

        if args.get('running', '').lower() == 'true':
            now = utcnow()
            query = query.filter(
                CampaignRule.active.is_(True),
                CampaignRule.start_date <= now,
                CampaignRule.end_date >= now
            )

        query = query.order_by(desc(CampaignRule.created_at))

        paginated = query.paginate(
            page=pagination['page'],
            per_page=pagination['per_page'],
            error_out=False
        )

        return APIResponse.success({
            'campaigns': [rule.to_dict() for rule in paginated.items],
            'pagination': {
                'page': paginated.page,
                'perPage': paginated.per_page,
                'totalPages': paginated.pages,
                'totalItems': paginated.total
            }
        })

    except Exception as e:
        current_app.logger.error(f"Get campaigns error: {str(e)}")
        return APIResponse.error("Failed to fetch campaigns")


@admin_bp.route('/campaigns/<campaign_id>', methods=['GET'])
@admin_required()
def get_campaign(campaign_id):
    """Get campaign rule with the tours it currently discounts"""
    try:
        rule = db.session.get(CampaignRule, campaign_id)
        if not rule:
            return APIResponse.not_found("Campaign not found")

        rule_data = rule.to_dict()
        rule_data['tours'] = [
            {'id': t.id, 'title': t.title, 'discount': float(t.discount)}
            for t in Tour.query.filter_by(campaign_rule_id=rule.id).all()
        ]

        return APIResponse.success({'campaign': rule_data})

    except Exception as e:
        current_app.logger.error(f"Get campaign error: {str(e)}")
        return APIResponse.error("Failed to fetch campaign details")


@admin_bp.route('/campaigns', methods=['POST'])
@admin_required('admin')
def create_campaign():
    """Create a campaign rule. It takes effect on the next campaign run."""
    try:
        data = request.get_json(silent=True) or {}
        is_valid, errors, cleaned_data = AdminSchemas.validate_campaign_create(data)

        if not is_valid:
            return APIResponse.validation_error(errors)

        rule = CampaignRule(**cleaned_data)
        db.session.add(rule)
        db.session.commit()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='campaign_created',
            entity_type='campaign_rule',
            entity_id=rule.id,
            description=f'Admin created campaign {rule.name}',
            changes=cleaned_data
        )

        return APIResponse.success({
            'campaign': rule.to_dict()
        }, message='Campaign created successfully', status_code=201)

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Create campaign error: {str(e)}")
        return APIResponse.error("Failed to create campaign")


@admin_bp.route('/campaigns/<campaign_id>', methods=['PATCH'])
@admin_required('admin')
def update_campaign(campaign_id):
    """Update campaign rule"""
    try:
        rule = db.session.get(CampaignRule, campaign_id)
        if not rule:
            return APIResponse.not_found("Campaign not found")

        data = request.get_json(silent=True) or {}
        is_valid, errors, cleaned_data = AdminSchemas.validate_campaign_update(data, current=rule)

        if not is_valid:
            return APIResponse.validation_error(errors)

        for key, value in cleaned_data.items():
            setattr(rule, key, value)

        if cleaned_data.get('active') is False:
            clear_rule_from_tours(rule.id)

        db.session.commit()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='campaign_updated',
            entity_type='campaign_rule',
            entity_id=campaign_id,
            description=f'Admin updated campaign {rule.name}',
            changes=cleaned_data
        )

        return APIResponse.success({
            'campaign': rule.to_dict()
        }, message='Campaign updated successfully')

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Update campaign error: {str(e)}")
        return APIResponse.error("Failed to update campaign")


@admin_bp.route('/campaigns/<campaign_id>', methods=['DELETE'])
@admin_required('admin')
def delete_campaign(campaign_id):
    """Delete campaign rule and take its discount off the tours it was applied to"""
    try:
        rule = db.session.get(CampaignRule, campaign_id)
        if not rule:
            return APIResponse.not_found("Campaign not found")

        name = rule.name
        cleared = clear_rule_from_tours(rule.id)
        db.session.delete(rule)
        db.session.commit()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='campaign_deleted',
            entity_type='campaign_rule',
            entity_id=campaign_id,
            description=f'Admin deleted campaign {name} ({cleared} tours reset)'
        )

        return APIResponse.success({'toursReset': cleared}, message='Campaign deleted successfully')

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Delete campaign error: {str(e)}")
        return APIResponse.error("Failed to delete campaign")


@admin_bp.route('/campaigns/apply', methods=['POST'])
@admin_required('admin')
def apply_campaigns():
    """Run the campaign matcher now instead of waiting for the hourly job"""
    try:
        result = apply_active_campaigns()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='campaigns_applied',
            entity_type='campaign_rule',
            description=f'Manual campaign run updated {result.tours_updated} tours',
            changes=result.to_dict()
        )

        return APIResponse.success(
            result.to_dict(),
            message=f'Campaign rules applied to {result.tours_updated} tours'
        )

    except Exception as e:
        current_app.logger.error(f"Apply campaigns error: {str(e)}")
        return APIResponse.error("Failed to apply campaigns", status_code=500)


def _clear_disabled_rule(rule, field, active):
    if not active:
        cleared = clear_rule_from_tours(rule.id)
        db.session.commit()
        current_app.logger.info(f"Campaign {rule.id} disabled, {cleared} tours reset")


admin_bp.add_url_rule(
    '/campaigns/<entity_id>/toggle',
    view_func=admin_required('admin')(
        make_toggle_view(CampaignRule, {'active': 'active'}, 'campaign_rule', after_toggle=_clear_disabled_rule)
    ),
    methods=['PATCH']
)
