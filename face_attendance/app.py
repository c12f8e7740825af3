"""
Flask application for HTTP API.

Provides:
- GET /health: Service health check
- GET/POST /identities, DELETE /identities/<id>: Enrollment management
- POST /check-in: Identify a frame and record attendance
- GET /attendance, /attendance/stats, /attendance/export: Reports
- DELETE /data: Clear all identities and events
"""

import base64
import csv
import io
import time
from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from .config import Config
from .errors import ExtractionFailure, EnrollmentError, NoFaceDetectedError, StorageError
from .models import AttendanceEvent, CheckInOutcome, Identity, day_key_for
from .service import AttendanceService
from .utils.timing import format_uptime, parse_day
from .logging_config import get_logger

logger = get_logger(__name__)

EXPORT_HEADERS = ['Name', 'Date', 'Time', 'Identity ID']


def identity_json(identity: Identity) -> dict:
    return {
        'id': identity.id,
        'displayName': identity.display_name,
        'hasDescriptor': identity.has_descriptor,
        'createdAt': identity.created_at.isoformat(),
        'photoUrl': identity.photo_url,
    }


def photo_data_url(mimetype: str, image: bytes) -> str:
    """Inline data URL for an uploaded enrollment photo."""
    encoded = base64.b64encode(image).decode('ascii')
    return f'data:{mimetype or "image/jpeg"};base64,{encoded}'


def event_json(event: AttendanceEvent) -> dict:
    return {
        'id': event.id,
        'identityId': event.identity_id,
        'identityName': event.identity_name_snapshot,
        'timestamp': event.timestamp.isoformat(),
        'dayKey': event.day_key.isoformat(),
    }


def outcome_json(outcome: CheckInOutcome) -> dict:
    return {
        'status': outcome.status.value,
        'identity': identity_json(outcome.identity) if outcome.identity else None,
        'event': event_json(outcome.event) if outcome.event else None,
        'distance': outcome.distance,
    }


def create_app(service: AttendanceService, config: Config) -> Flask:
    """
    Create and configure Flask application.

    Args:
        service: Loaded attendance service
        config: Service configuration

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)
    CORS(app)
    started_at = time.time()

    def today():
        return day_key_for(service.clock())

    @app.errorhandler(StorageError)
    def storage_error(e):
        logger.error(f'Storage error: {e}')
        return jsonify({'error': str(e)}), 503

    @app.route('/health')
    def health():
        """Health check endpoint."""
        return jsonify({
            'status': 'ok',
            'service': config.service_name,
            'deviceId': config.device_id,
            'identities': len(service.registry),
            'matchable': len(service.registry.matchable_subset()),
            'events': len(service.ledger),
            'uptime': format_uptime(time.time() - started_at),
        })

    @app.route('/identities', methods=['GET'])
    def list_identities():
        return jsonify([identity_json(i) for i in service.list_identities()])

    @app.route('/identities', methods=['POST'])
    def enroll():
        name = request.form.get('name', '')
        photo = request.files.get('photo')
        if photo is None:
            return jsonify({'error': 'Missing photo'}), 400

        image = photo.read()
        try:
            identity = service.enroll(name, image, photo_url=photo_data_url(photo.mimetype, image))
        except NoFaceDetectedError as e:
            return jsonify({'error': str(e)}), 422
        except EnrollmentError as e:
            return jsonify({'error': str(e)}), 400
        except ExtractionFailure as e:
            logger.error(f'Enrollment extraction failed: {e}')
            return jsonify({'error': str(e)}), 502

        return jsonify(identity_json(identity)), 201

    @app.route('/identities/<identity_id>', methods=['DELETE'])
    def delete_identity(identity_id):
        service.delete_identity(identity_id)
        return '', 204

    @app.route('/check-in', methods=['POST'])
    def check_in():
        frame = request.files.get('frame')
        if frame is None:
            return jsonify({'error': 'Missing frame'}), 400

        try:
            outcome = service.process_frame(frame.read())
        except ExtractionFailure as e:
            logger.error(f'Detection error: {e}')
            return jsonify({'error': str(e)}), 502

        return jsonify(outcome_json(outcome))

    @app.route('/attendance')
    def attendance():
        try:
            day_key = parse_day(request.args.get('day'), today())
        except ValueError:
            return jsonify({'error': 'day must be YYYY-MM-DD'}), 400

        events = service.attendance_for_day(day_key)
        return jsonify({
            'day': day_key.isoformat(),
            'total': len(events),
            'events': [event_json(e) for e in events],
        })

    @app.route('/attendance/stats')
    def attendance_stats():
        try:
            day_key = parse_day(request.args.get('day'), today())
        except ValueError:
            return jsonify({'error': 'day must be YYYY-MM-DD'}), 400

        return jsonify(service.attendance_stats(day_key))

    @app.route('/attendance/export')
    def export_attendance():
        """Download every event as CSV."""
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(EXPORT_HEADERS)
        writer.writerows(service.export_all_events_as_rows())

        filename = f'attendance_{today().isoformat()}.csv'
        return Response(
            buffer.getvalue(),
            mimetype='text/csv',
            headers={'Content-Disposition': f'attachment; filename={filename}'},
        )

    @app.route('/data', methods=['DELETE'])
    def clear_data():
        service.clear_all()
        return '', 204

    return app
