import os
import logging
from datetime import datetime

from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy
from werkzeug.utils import secure_filename

from config.settings import config as config_classes
from scripts.env_config import ensure_env_loaded, get_app_config, check_env_status
from scripts.draft_rules import DraftValidationError, build_event_payload, reconcile_edit
from scripts.draft_store import InMemoryDraftStore, JsonFileDraftStore, OcrDraftSession
from scripts.event_text_parser import EventTextParser
from scripts.generic_crud_generator import register_generic_crud_endpoints, resolve_keywords
from scripts.ocr_engine import OcrError, extract_text_from_image
from scripts.time_utils import format_time_to_ampm, today_local
from scripts.utils import clean_keyword_list, generate_unique_slug, parse_bool_field

# Ensure environment is loaded
ensure_env_loaded()

def setup_logging():
    """Setup logging to logs/app.log and the console"""
    # Create logs directory if it doesn't exist
    logs_dir = os.path.join(os.path.dirname(__file__), 'logs')
    os.makedirs(logs_dir, exist_ok=True)

    # Configure logging format
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    # Setup file handler for all logs
    file_handler = logging.FileHandler(os.path.join(logs_dir, 'app.log'))
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(log_format))

    # Setup console handler for important logs
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))

    # Configure root logger
    logging.basicConfig(
        level=logging.DEBUG,
        format=log_format,
        handlers=[file_handler, console_handler]
    )

    # Create specific loggers
    app_logger = logging.getLogger('app')
    api_logger = logging.getLogger('api')
    ocr_logger = logging.getLogger('ocr')

    return app_logger, api_logger, ocr_logger

# Setup logging
app_logger, api_logger, ocr_logger = setup_logging()

# Get app configuration
app_config = get_app_config()
DEFAULT_SORT_ORDER = app_config['default_sort_order']

app = Flask(__name__)
app.config.from_object(config_classes[os.getenv('APP_CONFIG', 'default')])
CORS(app)

db = SQLAlchemy(app)

STATUS_VALUES = ('draft', 'published', 'archived')

# Define models directly in app.py for simplicity
class Location(db.Model):
    """Wineries and other places shown in the app"""
    __tablename__ = 'locations'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), unique=True, nullable=False)
    region = db.Column(db.String(100))
    short_description = db.Column(db.Text)
    website_url = db.Column(db.String(500))
    status = db.Column(db.String(20), default='draft', nullable=False)
    sort_order = db.Column(db.Integer, default=1000)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    deleted_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'region': self.region,
            'short_description': self.short_description,
            'website_url': self.website_url,
            'status': self.status,
            'sort_order': self.sort_order,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'deleted_at': self.deleted_at.isoformat() if self.deleted_at else None
        }

class Event(db.Model):
    """Events, whether typed in, imported or read off a flyer"""
    __tablename__ = 'events'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), unique=True, nullable=False)
    description = db.Column(db.Text)
    host_org = db.Column(db.String(200))
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)
    start_time = db.Column(db.String(5))  # HH:MM
    end_time = db.Column(db.String(5))
    all_day = db.Column(db.Boolean, default=False)
    location = db.Column(db.String(200))
    recurrence = db.Column(db.String(50))
    website_url = db.Column(db.String(500))
    image_url = db.Column(db.String(500))
    ocr_text = db.Column(db.Text)
    status = db.Column(db.String(20), default='draft', nullable=False)
    sort_order = db.Column(db.Integer, default=1000)
    is_signature_event = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    deleted_at = db.Column(db.DateTime)

    # Relationships
    keywords = db.relationship('Keyword', secondary='event_keywords', order_by='Keyword.name', lazy='selectin',
                               backref=db.backref('events', lazy=True))

    def to_dict(self):
        if self.all_day:
            time_display = 'All day'
        elif self.end_time:
            time_display = f"{format_time_to_ampm(self.start_time)} - {format_time_to_ampm(self.end_time)}"
        else:
            time_display = format_time_to_ampm(self.start_time)

        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'description': self.description,
            'host_org': self.host_org,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'all_day': bool(self.all_day),
            'time_display': time_display,
            'location': self.location,
            'recurrence': self.recurrence,
            'website_url': self.website_url,
            'image_url': self.image_url,
            'ocr_text': self.ocr_text,
            'status': self.status,
            'sort_order': self.sort_order,
            'is_signature_event': bool(self.is_signature_event),
            'keywords': [keyword.name for keyword in self.keywords],
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'deleted_at': self.deleted_at.isoformat() if self.deleted_at else None
        }

class Keyword(db.Model):
    """Lowercase tags used to filter events"""
    __tablename__ = 'keywords'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'event_count': sum(1 for event in self.events if event.deleted_at is None),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

class EventKeyword(db.Model):
    """Join table between events and keywords"""
    __tablename__ = 'event_keywords'
    __table_args__ = (db.UniqueConstraint('event_id', 'keyword_id', name='uq_event_keyword'),)

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id', ondelete='CASCADE'), nullable=False, index=True)
    keyword_id = db.Column(db.Integer, db.ForeignKey('keywords.id', ondelete='CASCADE'), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

class Route(db.Model):
    """Driving or cycling routes"""
    __tablename__ = 'routes'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), unique=True, nullable=False)
    gpx_url = db.Column(db.String(500))
    duration_minutes = db.Column(db.Float)
    start_point = db.Column(db.String(200))
    end_point = db.Column(db.String(200))
    difficulty = db.Column(db.String(20))  # easy, moderate, challenging
    notes = db.Column(db.Text)
    status = db.Column(db.String(20), default='draft', nullable=False)
    sort_order = db.Column(db.Integer, default=1000)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    deleted_at = db.Column(db.DateTime)

    def to_dict(self):
        duration = self.duration_minutes
        if duration is not None and float(duration).is_integer():
            duration = int(duration)
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'gpx_url': self.gpx_url,
            'duration_minutes': duration,
            'start_point': self.start_point,
            'end_point': self.end_point,
            'difficulty': self.difficulty,
            'notes': self.notes,
            'status': self.status,
            'sort_order': self.sort_order,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'deleted_at': self.deleted_at.isoformat() if self.deleted_at else None
        }

class AdVendor(db.Model):
    """Businesses that buy ad placements"""
    __tablename__ = 'ad_vendors'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    contact_email = db.Column(db.String(200))
    contact_phone = db.Column(db.String(50))
    notes = db.Column(db.Text)
    status = db.Column(db.String(20), default='draft', nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    deleted_at = db.Column(db.DateTime)

    # Relationships
    ads = db.relationship('Ad', backref='vendor', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'contact_email': self.contact_email,
            'contact_phone': self.contact_phone,
            'notes': self.notes,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'deleted_at': self.deleted_at.isoformat() if self.deleted_at else None
        }

class Ad(db.Model):
    """An ad creative placed in the header or body of the app"""
    __tablename__ = 'ads'

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey('ad_vendors.id'), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    image_url = db.Column(db.String(500), nullable=False)
    mobile_image_url = db.Column(db.String(500))
    target_url = db.Column(db.String(500))
    position = db.Column(db.String(20), default='body', nullable=False)  # header, body
    priority = db.Column(db.Integer, default=100)
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)
    status = db.Column(db.String(20), default='draft', nullable=False)
    sort_order = db.Column(db.Integer, default=1000)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    deleted_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'id': self.id,
            'vendor_id': self.vendor_id,
            'vendor_name': self.vendor.name if self.vendor else None,
            'name': self.name,
            'image_url': self.image_url,
            'mobile_image_url': self.mobile_image_url,
            'target_url': self.target_url,
            'position': self.position,
            'priority': self.priority,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'status': self.status,
            'sort_order': self.sort_order,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'deleted_at': self.deleted_at.isoformat() if self.deleted_at else None
        }

register_generic_crud_endpoints(app, db, Location, Event, Route, AdVendor, Ad, Keyword)

def today():
    """Reference date for drafts and forms, in the configured timezone"""
    return today_local(app_config['timezone'])

def create_draft_session():
    """Build the OCR draft session backed by the configured store"""
    if app.config.get('DRAFT_STORE') == 'memory':
        store = InMemoryDraftStore()
    else:
        store = JsonFileDraftStore(app_config['draft_store_path'])
    session = OcrDraftSession(store, parser_factory=lambda ref: EventTextParser(today=ref), today_fn=today)
    session.load()
    return session

ocr_session = create_draft_session()

def create_error_response(message, status_code=500):
    """Create standardized error response"""
    return jsonify({'error': message}), status_code

def allowed_image(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in app.config['ALLOWED_IMAGE_EXTENSIONS']

@app.errorhandler(413)
def file_too_large(e):
    return create_error_response('Uploaded file is too large', 413)

@app.route('/api/health')
def health_check():
    """Health check endpoint"""
    try:
        db.session.execute(db.text('SELECT 1'))
        database = 'connected'
    except Exception as e:
        app_logger.error(f"Health check database error: {e}")
        database = 'unavailable'

    env_status = check_env_status()
    return jsonify({
        'status': 'healthy' if database == 'connected' else 'degraded',
        'timestamp': datetime.utcnow().isoformat(),
        'database': database,
        'timezone': env_status['timezone'],
        'env_file_exists': env_status['env_file_exists']
    })

@app.route('/api/admin/ocr/parse', methods=['POST'])
def parse_ocr_text():
    """Parse pasted OCR text into a draft and keep it as the current draft"""
    data = request.get_json(silent=True) or {}
    text = data.get('text')
    if not isinstance(text, str):
        return create_error_response('text is required', 400)

    state = ocr_session.set_text(text)
    ocr_logger.info(f"Parsed OCR text ({len(text)} chars) into draft '{state['draft']['name']}'")
    return jsonify(state)

@app.route('/api/admin/ocr/upload', methods=['POST'])
def upload_ocr_image():
    """Upload a flyer image, read its text and parse it into a draft"""
    if 'image' not in request.files:
        return create_error_response('No image file provided', 400)

    file = request.files['image']
    if file.filename == '':
        return create_error_response('No image file selected', 400)

    # Validate file type
    if not allowed_image(file.filename):
        allowed = ', '.join(sorted(app.config['ALLOWED_IMAGE_EXTENSIONS'])).upper()
        return create_error_response(f'Invalid file type. Allowed: {allowed}', 400)

    # Save uploaded file
    upload_dir = app.config['UPLOAD_DIR']
    os.makedirs(upload_dir, exist_ok=True)
    filename = f"flyer_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{secure_filename(file.filename)}"
    file_path = os.path.join(upload_dir, filename)
    file.save(file_path)

    try:
        text = extract_text_from_image(file_path)
    except OcrError as e:
        ocr_logger.error(f"OCR failed for {filename}: {e}")
        return create_error_response(f'OCR failed: {e}', 502)
    finally:
        # Clean up uploaded file
        try:
            os.remove(file_path)
        except OSError as e:
            ocr_logger.warning(f"Could not remove uploaded file {file_path}: {e}")

    state = ocr_session.set_text(text)
    return jsonify(state)

@app.route('/api/admin/ocr/draft', methods=['GET'])
def get_ocr_draft():
    """Current OCR draft, restored from the draft store"""
    return jsonify(ocr_session.state)

@app.route('/api/admin/ocr/draft', methods=['DELETE'])
def clear_ocr_draft():
    return jsonify(ocr_session.reset())

@app.route('/api/admin/ocr/draft/edit', methods=['POST'])
def edit_ocr_draft():
    """Apply one field edit to the OCR draft"""
    data = request.get_json(silent=True) or {}
    field = data.get('field')
    if not field:
        return create_error_response('field is required', 400)

    try:
        state = ocr_session.edit(field, data.get('value'), commit=parse_bool_field(data.get('commit', True)))
    except LookupError as e:
        return create_error_response(str(e), 404)
    return jsonify(state)

@app.route('/api/admin/ocr/confirm', methods=['POST'])
def confirm_ocr_draft():
    """Save the reviewed draft as a new event and clear the draft"""
    data = request.get_json(silent=True) or {}
    state = ocr_session.state
    draft = data.get('draft') or state.get('draft')
    if not draft:
        return create_error_response('No OCR draft to confirm', 404)

    try:
        payload = build_event_payload(
            draft,
            ocr_text=data.get('ocr_text', state.get('ocr_text')),
            status=data.get('status'),
            sort_order=data.get('sort_order'),
            default_sort_order=DEFAULT_SORT_ORDER
        )
    except DraftValidationError as e:
        return jsonify({'error': 'Validation failed', 'errors': e.errors}), 400

    try:
        existing = [row[0] for row in db.session.query(Event.slug).all()]
        payload['slug'] = generate_unique_slug(payload['slug'], existing)
        event = Event(**payload)
        event.keywords = resolve_keywords(db, Keyword, data.get('keywords', draft.get('keywords')))
        db.session.add(event)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        api_logger.error(f"Error saving OCR event: {e}")
        # The draft is kept so the operator can retry
        return create_error_response(str(e), 500)

    ocr_session.reset()
    api_logger.info(f"Created event {event.id} '{event.name}' from OCR draft")
    return jsonify(event.to_dict()), 201

@app.route('/api/admin/events/form/reconcile', methods=['POST'])
def reconcile_event_form():
    """Apply the event form rules to one edit and return the updated values"""
    data = request.get_json(silent=True) or {}
    field = data.get('field')
    if not field:
        return create_error_response('field is required', 400)

    record = reconcile_edit(
        data.get('record') or {},
        field,
        data.get('value'),
        today=today(),
        commit=parse_bool_field(data.get('commit', True)),
        derive_slug=True,
        slug_overridden=bool(data.get('slug_overridden'))
    )
    return jsonify({'record': record})

@app.route('/api/admin/keywords', methods=['GET'])
def list_keywords():
    """Keywords for the picker, optionally filtered by a name fragment"""
    query = Keyword.query
    search = (request.args.get('q') or '').strip().lower()
    if search:
        query = query.filter(Keyword.name.contains(search))
    return jsonify([keyword.to_dict() for keyword in query.order_by(Keyword.name).all()])

@app.route('/api/admin/keywords', methods=['POST'])
def create_keyword():
    """Add a keyword; an existing one with the same name is returned as is"""
    data = request.get_json(silent=True) or {}
    names = clean_keyword_list([data.get('name')])
    if not names:
        return create_error_response('name is required', 400)

    keyword = Keyword.query.filter_by(name=names[0]).first()
    if keyword is not None:
        return jsonify(keyword.to_dict())

    try:
        keyword = Keyword(name=names[0])
        db.session.add(keyword)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        api_logger.error(f"Error creating keyword '{names[0]}': {e}")
        return create_error_response(str(e), 500)
    return jsonify(keyword.to_dict()), 201

@app.route('/api/admin/keywords/<int:keyword_id>', methods=['DELETE'])
def delete_keyword(keyword_id):
    """Remove a keyword from every event that uses it"""
    keyword = db.session.get(Keyword, keyword_id)
    if keyword is None:
        return create_error_response('Not found', 404)
    try:
        db.session.delete(keyword)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        api_logger.error(f"Error deleting keyword {keyword_id}: {e}")
        return create_error_response(str(e), 500)
    return jsonify({'message': 'Keyword deleted successfully', 'id': keyword_id})

def main():
    """Run the development server"""
    with app.app_context():
        db.create_all()

    app.run(debug=app.config['DEBUG'], port=app.config['APP_PORT'], host=app.config['APP_HOST'])

if __name__ == '__main__':
    main()
