"""
Flask host for the job engine.

Thin JSON routes over JobService; validation lives in the service and
surfaces here through its typed errors.
"""

import logging

from flask import Flask, jsonify, request

from awake.errors import JobNotFoundError, JobValidationError, StoreError
from awake.models import JobSpec
from awake.service import JobService


logger = logging.getLogger("awake.server")

# Request field name -> JobService.update() field name
UPDATE_FIELD_MAP = {
    'url': 'url',
    'method': 'method',
    'headers': 'headers',
    'body': 'body',
    'intervalMs': 'interval_ms',
    'maxRetries': 'max_retries',
    'retryDelayMs': 'retry_delay_ms',
}


def create_app(service: JobService) -> Flask:
    """
    Build the Flask app bound to a JobService.

    Args:
        service: Backing job service (already wired to a running scheduler)

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    @app.errorhandler(JobValidationError)
    def handle_validation(e):
        return jsonify({'error': str(e)}), 400

    @app.errorhandler(JobNotFoundError)
    def handle_not_found(e):
        return jsonify({'error': 'not found'}), 404

    @app.errorhandler(StoreError)
    def handle_store(e):
        logger.error(f"Store failure handling {request.method} {request.path}: {e}")
        return jsonify({'error': 'storage unavailable'}), 500

    def _json_body():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise JobValidationError("request body must be a JSON object")
        return data

    # ============================================
    # Jobs API
    # ============================================

    @app.route('/jobs', methods=['POST'])
    def create_job():
        """Create a job and arm its first wake."""
        data = _json_body()
        if not data.get('url') or data.get('intervalMs') is None:
            return jsonify({'error': 'url and intervalMs are required'}), 400

        job = service.create(JobSpec.from_dict(data))
        return jsonify(job.to_dict()), 201

    @app.route('/jobs')
    def list_jobs():
        """List all jobs, newest first."""
        return jsonify([job.to_dict() for job in service.list_jobs()])

    @app.route('/jobs/<int:job_id>')
    def get_job(job_id):
        return jsonify(service.get(job_id).to_dict())

    @app.route('/jobs/<int:job_id>', methods=['PATCH'])
    def update_job(job_id):
        """Change a job's target, payload, interval or retry policy."""
        data = _json_body()
        changes = {UPDATE_FIELD_MAP[k]: v for k, v in data.items() if k in UPDATE_FIELD_MAP}
        if not changes:
            return jsonify({'error': 'No updatable fields provided'}), 400

        job = service.update(job_id, changes)
        return jsonify(job.to_dict())

    @app.route('/jobs/<int:job_id>', methods=['DELETE'])
    def delete_job(job_id):
        service.delete(job_id)
        return jsonify({'ok': True})

    @app.route('/jobs/<int:job_id>/disable', methods=['POST'])
    def disable_job(job_id):
        return jsonify(service.disable(job_id).to_dict())

    @app.route('/jobs/<int:job_id>/enable', methods=['POST'])
    def enable_job(job_id):
        return jsonify(service.enable(job_id).to_dict())

    @app.route('/jobs/<int:job_id>/runs')
    def job_runs(job_id):
        """Get run history for a job."""
        limit = request.args.get('limit', type=int)
        runs = service.list_runs(job_id, limit=limit)
        return jsonify({'runs': [run.to_dict() for run in runs]})

    @app.route('/health')
    def health():
        return jsonify({'ok': True})

    return app
