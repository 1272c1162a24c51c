#!/usr/bin/env python3
"""
Generic CRUD Endpoint Generator
Registers list/create/update/delete, status transitions, CSV export/import
and dialog navigation endpoints for every admin resource
"""

import logging
import math
from datetime import datetime

from flask import Response, jsonify, request
from sqlalchemy import Boolean, Date, Float, Integer

from scripts.csv_codec import CsvFormatError, parse_csv, to_csv
from scripts.draft_rules import EVENT_STATUSES
from scripts.navigation import NavigationInProgress, RecordNavigator
from scripts.resource_import import ROUTE_DIFFICULTIES, SCHEMAS, build_import_preview
from scripts.time_utils import is_canonical_time
from scripts.utils import clean_keyword_list, generate_unique_slug, parse_bool_field, parse_iso_date, slugify

logger = logging.getLogger(__name__)

AD_POSITIONS = ('header', 'body')


def _validate_event(values):
    errors = []
    for key in ('start_time', 'end_time'):
        if values.get(key) and not is_canonical_time(values[key]):
            errors.append(f'{key} must be HH:MM')
    start, end = values.get('start_date'), values.get('end_date')
    if start and end and end < start:
        errors.append('end_date cannot be before start_date')
    return errors


def _validate_route(values):
    difficulty = values.get('difficulty')
    if difficulty and difficulty not in ROUTE_DIFFICULTIES:
        return ['difficulty must be easy|moderate|challenging']
    return []


def _validate_ad(values):
    errors = []
    if values.get('position') and values['position'] not in AD_POSITIONS:
        errors.append('position must be header|body')
    start, end = values.get('start_date'), values.get('end_date')
    if start and end and end < start:
        errors.append('end_date cannot be before start_date')
    return errors


def _coerce_value(column, value):
    """Convert JSON values to what the column expects"""
    if value == '' and column.nullable:
        return None
    if value is None:
        return None
    if isinstance(column.type, Date):
        parsed = parse_iso_date(value)
        if parsed is None:
            raise ValueError(f'{column.name} must be YYYY-MM-DD')
        return parsed
    if isinstance(column.type, Boolean):
        return parse_bool_field(value)
    if isinstance(column.type, Integer):
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValueError(f'{column.name} must be an integer') from None
        if not number.is_integer():
            raise ValueError(f'{column.name} must be an integer')
        return int(number)
    if isinstance(column.type, Float):
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValueError(f'{column.name} must be a number') from None
        if not math.isfinite(number):
            raise ValueError(f'{column.name} must be a number')
        return number
    return value


def _collect_values(model_class, data, exclude_fields):
    """Pick writable model columns out of a JSON body, coercing types"""
    columns = model_class.__table__.columns
    values = {}
    errors = []
    for key, value in data.items():
        if key in exclude_fields or key not in columns:
            continue
        try:
            values[key] = _coerce_value(columns[key], value)
        except ValueError as e:
            errors.append(str(e))
    if 'status' in values and values['status'] not in EVENT_STATUSES:
        errors.append(f"status must be one of {', '.join(EVENT_STATUSES)}")
    return values, errors


def _validate(config, values):
    validator = config['validator']
    return validator(values) if validator else []


def _assign_unique_slug(db, model_class, item, requested):
    """Slugs stay unique across live and soft-deleted rows"""
    existing = [row[0] for row in db.session.query(model_class.slug).all()]
    base = slugify(requested) or slugify(item.name)
    item.slug = generate_unique_slug(base, existing, exclude_slug=item.slug)


def resolve_keywords(db, keyword_model, names):
    """Keyword rows for the given names, creating the missing ones"""
    names = clean_keyword_list(names)
    if not names:
        return []
    found = {keyword.name: keyword for keyword in keyword_model.query.filter(keyword_model.name.in_(names)).all()}
    keywords = []
    for name in names:
        keyword = found.get(name)
        if keyword is None:
            keyword = keyword_model(name=name)
            db.session.add(keyword)
            found[name] = keyword
        keywords.append(keyword)
    return keywords


def _apply_keywords(db, config, item, data):
    """Replace an item's keywords when the body carries a 'keywords' field"""
    keyword_model = config.get('keyword_model')
    if keyword_model is None or 'keywords' not in data:
        return
    item.keywords = resolve_keywords(db, keyword_model, data['keywords'])


def _read_upload_text():
    """CSV text from a multipart 'file' field or a JSON {'text': ...} body"""
    if 'file' in request.files:
        try:
            text = request.files['file'].read().decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise CsvFormatError(f'File is not UTF-8 text: {e.reason} at byte {e.start}') from e
        return text, request.form.get('delimiter')
    data = request.get_json(silent=True) or {}
    return data.get('text') or '', data.get('delimiter')


def register_generic_crud_endpoints(app, db, Location, Event, Route, AdVendor, Ad, Keyword):
    """Create generic CRUD endpoints for all models"""

    # Define models and their configurations
    models_config = {
        'locations': {
            'model': Location,
            'route_prefix': '/api/admin/locations',
            'exclude_fields': ['id', 'created_at', 'updated_at', 'deleted_at'],
            'required_fields': ['name'],
            'validator': None,
        },
        'events': {
            'model': Event,
            'route_prefix': '/api/admin/events',
            'exclude_fields': ['id', 'created_at', 'updated_at', 'deleted_at'],
            'required_fields': ['name'],
            'validator': _validate_event,
            'keyword_model': Keyword,
        },
        'routes': {
            'model': Route,
            'route_prefix': '/api/admin/routes',
            'exclude_fields': ['id', 'created_at', 'updated_at', 'deleted_at'],
            'required_fields': ['name'],
            'validator': _validate_route,
        },
        'ad_vendors': {
            'model': AdVendor,
            'route_prefix': '/api/admin/ad-vendors',
            'exclude_fields': ['id', 'created_at', 'updated_at', 'deleted_at'],
            'required_fields': ['name'],
            'validator': None,
        },
        'ads': {
            'model': Ad,
            'route_prefix': '/api/admin/ads',
            'exclude_fields': ['id', 'created_at', 'updated_at', 'deleted_at'],
            'required_fields': ['name', 'vendor_id', 'image_url'],
            'validator': _validate_ad,
        },
    }

    for model_name, config in models_config.items():
        model_class = config['model']
        route_prefix = config['route_prefix']
        has_slug = 'slug' in model_class.__table__.columns
        navigator = RecordNavigator()

        def create_list_endpoint(model_class, config):
            def list_items():
                """List live records, sorted the way the admin tables show them"""
                query = model_class.query
                if not parse_bool_field(request.args.get('include_deleted')):
                    query = query.filter(model_class.deleted_at.is_(None))
                status = request.args.get('status')
                if status:
                    query = query.filter(model_class.status == status)
                search = (request.args.get('q') or '').strip()
                if search:
                    query = query.filter(model_class.name.ilike(f'%{search}%'))
                keyword_model = config.get('keyword_model')
                keyword_filter = clean_keyword_list(request.args.getlist('keyword'))
                if keyword_model is not None and keyword_filter:
                    # Any of the selected keywords
                    query = query.filter(model_class.keywords.any(keyword_model.name.in_(keyword_filter)))
                if hasattr(model_class, 'sort_order'):
                    query = query.order_by(model_class.sort_order, model_class.name)
                else:
                    query = query.order_by(model_class.name)
                return jsonify([item.to_dict() for item in query.all()])

            return list_items

        def create_create_endpoint(model_name, model_class, config, has_slug):
            def create_item():
                """Generic create endpoint for any model"""
                data = request.get_json(silent=True)
                if not data:
                    return jsonify({'error': 'No JSON data provided'}), 400

                missing = [f for f in config['required_fields'] if data.get(f) in (None, '')]
                if missing:
                    return jsonify({'error': f"Missing required fields: {', '.join(missing)}"}), 400

                values, errors = _collect_values(model_class, data, config['exclude_fields'])
                errors.extend(_validate(config, values))
                if errors:
                    return jsonify({'error': 'Validation failed', 'errors': errors}), 400

                try:
                    requested_slug = values.pop('slug', None)
                    item = model_class(**values)
                    if has_slug:
                        item.slug = None
                        _assign_unique_slug(db, model_class, item, requested_slug)
                    _apply_keywords(db, config, item, data)
                    db.session.add(item)
                    db.session.commit()
                    logger.info(f"Created {model_name} {item.id}")
                    return jsonify(item.to_dict()), 201
                except ValueError as e:
                    db.session.rollback()
                    return jsonify({'error': str(e)}), 400
                except Exception as e:
                    db.session.rollback()
                    logger.error(f"Create {model_name} failed: {e}")
                    return jsonify({'error': f'Create failed: {str(e)}'}), 500

            return create_item

        # Create PUT endpoint for updating
        def create_update_endpoint(model_name, model_class, config, has_slug):
            def update_item(item_id):
                """Generic update endpoint for any model"""
                item = db.session.get(model_class, item_id)
                if item is None or item.deleted_at is not None:
                    return jsonify({'error': 'Not found'}), 404

                data = request.get_json(silent=True)
                if not data:
                    return jsonify({'error': 'No JSON data provided'}), 400

                values, errors = _collect_values(model_class, data, config['exclude_fields'])
                merged = {column: getattr(item, column) for column in model_class.__table__.columns.keys()}
                merged.update(values)
                errors.extend(_validate(config, merged))
                if errors:
                    return jsonify({'error': 'Validation failed', 'errors': errors}), 400

                try:
                    requested_slug = values.pop('slug', None)
                    for key, value in values.items():
                        setattr(item, key, value)
                    if has_slug and requested_slug is not None and requested_slug != item.slug:
                        _assign_unique_slug(db, model_class, item, requested_slug)
                    _apply_keywords(db, config, item, data)
                    item.updated_at = datetime.utcnow()
                    db.session.commit()
                    return jsonify(item.to_dict())
                except ValueError as e:
                    db.session.rollback()
                    return jsonify({'error': str(e)}), 400
                except Exception as e:
                    db.session.rollback()
                    logger.error(f"Update {model_name} {item_id} failed: {e}")
                    return jsonify({'error': f'Update failed: {str(e)}'}), 500

            return update_item

        # Create DELETE endpoint
        def create_delete_endpoint(model_class):
            def delete_item(item_id):
                """Soft delete: the row stays (and keeps its slug) with deleted_at set"""
                item = db.session.get(model_class, item_id)
                if item is None or item.deleted_at is not None:
                    return jsonify({'error': 'Not found'}), 404
                try:
                    item.deleted_at = datetime.utcnow()
                    db.session.commit()
                    return jsonify({'message': 'Item deleted successfully', 'id': item_id})
                except Exception as e:
                    db.session.rollback()
                    return jsonify({'error': f'Delete failed: {str(e)}'}), 500

            return delete_item

        def create_status_endpoint(model_class, status):
            def set_status(item_id):
                item = db.session.get(model_class, item_id)
                if item is None or item.deleted_at is not None:
                    return jsonify({'error': 'Not found'}), 404
                try:
                    item.status = status
                    item.updated_at = datetime.utcnow()
                    db.session.commit()
                    return jsonify(item.to_dict())
                except Exception as e:
                    db.session.rollback()
                    return jsonify({'error': f'Status change failed: {str(e)}'}), 500

            return set_status

        def create_navigate_endpoint(model_name, model_class, config, navigator):
            def navigate(item_id):
                """Save pending changes on the current record, then return its neighbour"""
                data = request.get_json(silent=True) or {}
                ids = data.get('ids') or []
                direction = data.get('direction', 'next')
                changes = data.get('changes') or {}

                item = db.session.get(model_class, item_id)
                if item is None:
                    return jsonify({'error': 'Not found'}), 404

                def save():
                    if not changes:
                        return
                    values, errors = _collect_values(model_class, changes, config['exclude_fields'] + ['slug'])
                    merged = {column: getattr(item, column) for column in model_class.__table__.columns.keys()}
                    merged.update(values)
                    errors.extend(_validate(config, merged))
                    if errors:
                        raise ValueError('; '.join(errors))
                    for key, value in values.items():
                        setattr(item, key, value)
                    _apply_keywords(db, config, item, changes)
                    item.updated_at = datetime.utcnow()
                    db.session.commit()

                try:
                    target_id = navigator.navigate(ids, item_id, direction, save)
                except NavigationInProgress as e:
                    return jsonify({'error': str(e)}), 409
                except ValueError as e:
                    db.session.rollback()
                    return jsonify({'error': str(e)}), 400
                except Exception as e:
                    db.session.rollback()
                    logger.error(f"Navigation save for {model_name} {item_id} failed: {e}")
                    return jsonify({'error': f'Save failed: {str(e)}'}), 500

                target = db.session.get(model_class, target_id) if target_id is not None else None
                return jsonify({
                    'saved': item.to_dict(),
                    'next_id': target_id,
                    'record': target.to_dict() if target else None,
                })

            return navigate

        def create_export_endpoint(model_class, schema):
            def export_items():
                items = (model_class.query.filter(model_class.deleted_at.is_(None))
                         .order_by(model_class.sort_order, model_class.name).all())
                body = to_csv([item.to_dict() for item in items], schema.headers)
                return Response(body, mimetype='text/csv',
                                headers={'Content-Disposition': f'attachment; filename={schema.export_filename}'})

            return export_items

        def create_template_endpoint(schema):
            def download_template():
                body = schema.template_csv()
                if not schema.template_rows:
                    body += '\n'
                return Response(body, mimetype='text/csv',
                                headers={'Content-Disposition': f'attachment; filename={schema.template_filename}'})

            return download_template

        def build_preview(resource):
            text, delimiter = _read_upload_text()
            grid = parse_csv(text, delimiter=delimiter)
            return build_import_preview(resource, grid)

        def create_import_preview_endpoint(resource):
            def import_preview():
                try:
                    preview = build_preview(resource)
                except CsvFormatError as e:
                    return jsonify({'error': str(e)}), 400
                return jsonify(preview.to_dict())

            return import_preview

        def create_import_confirm_endpoint(model_class, resource, config):
            def import_confirm():
                """All-or-nothing upsert by slug in a single transaction"""
                try:
                    preview = build_preview(resource)
                except CsvFormatError as e:
                    return jsonify({'error': str(e)}), 400
                if preview.errors:
                    return jsonify({'error': 'Fix errors before importing', 'errors': preview.errors}), 400

                created = updated = 0
                try:
                    existing = {item.slug: item for item in model_class.query.all()}
                    for record in preview.records:
                        values = dict(record)
                        if values.get('sort_order') is None:
                            values.pop('sort_order', None)
                        keyword_names = values.pop('keywords', None)
                        item = existing.get(values['slug'])
                        if item is None:
                            item = model_class(**values)
                            db.session.add(item)
                            existing[values['slug']] = item
                            created += 1
                        else:
                            for key, value in values.items():
                                setattr(item, key, value)
                            item.deleted_at = None
                            item.updated_at = datetime.utcnow()
                            updated += 1
                        if keyword_names:
                            _apply_keywords(db, config, item, {'keywords': keyword_names})
                    db.session.commit()
                except Exception as e:
                    db.session.rollback()
                    logger.error(f"Import of {resource} failed: {e}")
                    return jsonify({'error': str(e)}), 500

                logger.info(f"Imported {resource}: {created} created, {updated} updated")
                return jsonify({'message': f'Imported {len(preview.records)} {resource}',
                                'created': created, 'updated': updated})

            return import_confirm

        # Register endpoints
        app.add_url_rule(route_prefix, f'list_{model_name}', create_list_endpoint(model_class, config), methods=['GET'])
        app.add_url_rule(route_prefix, f'create_{model_name}',
                         create_create_endpoint(model_name, model_class, config, has_slug), methods=['POST'])
        app.add_url_rule(f'{route_prefix}/<int:item_id>', f'update_{model_name}',
                         create_update_endpoint(model_name, model_class, config, has_slug), methods=['PUT'])
        app.add_url_rule(f'{route_prefix}/<int:item_id>', f'delete_{model_name}',
                         create_delete_endpoint(model_class), methods=['DELETE'])
        app.add_url_rule(f'{route_prefix}/<int:item_id>/navigate', f'navigate_{model_name}',
                         create_navigate_endpoint(model_name, model_class, config, navigator), methods=['POST'])

        if 'status' in model_class.__table__.columns:
            app.add_url_rule(f'{route_prefix}/<int:item_id>/publish', f'publish_{model_name}',
                             create_status_endpoint(model_class, 'published'), methods=['POST'])
            app.add_url_rule(f'{route_prefix}/<int:item_id>/archive', f'archive_{model_name}',
                             create_status_endpoint(model_class, 'archived'), methods=['POST'])

        schema = SCHEMAS.get(model_name)
        if schema is not None:
            app.add_url_rule(f'{route_prefix}/export', f'export_{model_name}',
                             create_export_endpoint(model_class, schema), methods=['GET'])
            app.add_url_rule(f'{route_prefix}/template', f'template_{model_name}',
                             create_template_endpoint(schema), methods=['GET'])
            app.add_url_rule(f'{route_prefix}/import/preview', f'import_preview_{model_name}',
                             create_import_preview_endpoint(model_name), methods=['POST'])
            app.add_url_rule(f'{route_prefix}/import/confirm', f'import_confirm_{model_name}',
                             create_import_confirm_endpoint(model_class, model_name, config), methods=['POST'])

    logger.info("Generic CRUD endpoints registered successfully")
