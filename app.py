from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from models import db
from domain import Settings
from errors import TrackerError
from logic import parse_float
from repository import ShiftRepository, SqlKeyValueStore
from services import ShiftTracker
import os
import json
import time
from datetime import datetime
import logging
from logging.handlers import TimedRotatingFileHandler

app = Flask(__name__)
CORS(app)

# --- PFADE & ORDNER ---
basedir = os.path.abspath(os.path.dirname(__file__))
data_dir = os.getenv('DATA_DIR', os.path.join(basedir, 'data'))
db_path = os.path.join(data_dir, 'database.db')
log_dir = os.path.join(data_dir, 'logs')
backup_dir = os.path.join(data_dir, 'backups')

# Stelle sicher, dass alle Ordner existieren
for directory in [data_dir, log_dir, backup_dir]:
    os.makedirs(directory, exist_ok=True)

# --- 1. LOGGING KONFIGURATION (Log-Rotation) ---
# Rotiert alle 30 Tage, behält max. 6 alte Dateien (180 Tage)
log_file = os.path.join(log_dir, 'tracker.log')
log_handler = TimedRotatingFileHandler(log_file, when='D', interval=30, backupCount=6)
log_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
app.logger.addHandler(log_handler)
app.logger.setLevel(logging.INFO)

# Die Module repository/services loggen über ihre eigenen Logger in dieselbe Datei
for module_name in ['repository', 'services']:
    module_logger = logging.getLogger(module_name)
    module_logger.addHandler(log_handler)
    module_logger.setLevel(logging.INFO)

# --- DB KONFIGURATION ---
app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv('DATABASE_URL', f'sqlite:///{db_path}')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
db.init_app(app)

tracker = ShiftTracker(ShiftRepository(SqlKeyValueStore()))


# --- 2. TÄGLICHE SNAPSHOTS (Backup-Rotation) ---
def perform_daily_backup():
    """Schreibt einmal am Tag das Backup-JSON in den Backup-Ordner und löscht alte Dateien (>180 Tage)"""
    today_str = datetime.now().strftime('%Y-%m-%d')
    backup_file = os.path.join(backup_dir, f'backup_{today_str}.json')

    if not os.path.exists(backup_file):
        try:
            with open(backup_file, 'w', encoding='utf-8') as f:
                json.dump(tracker.export_backup(), f, indent=2)
            app.logger.info(f"Tägliches Backup erstellt: {backup_file}")
            now = time.time()
            for f in os.listdir(backup_dir):
                f_path = os.path.join(backup_dir, f)
                if os.path.isfile(f_path):
                    if os.stat(f_path).st_mtime < now - (180 * 86400):
                        os.remove(f_path)
                        app.logger.info(f"Altes Backup gelöscht (>180 Tage): {f}")
        except OSError as e:
            app.logger.error(f"Fehler beim Backup: {e}", exc_info=True)

@app.before_request
def before_request_hook():
    perform_daily_backup()


# --- APP STARTUP ---
with app.app_context():
    db.create_all()
    app.logger.info("Anwendung erfolgreich gestartet.")


# --- FEHLERBEHANDLUNG ---
@app.errorhandler(TrackerError)
def handle_tracker_error(e):
    app.logger.info(f"{type(e).__name__}: {e.message}")
    return jsonify({"success": False, "message": e.message}), e.status_code


# --- API ROUTEN ---

@app.route('/api/settings', methods=['GET', 'POST'])
def handle_settings():
    if request.method == 'POST':
        data = request.get_json(silent=True)
        if not data or not isinstance(data, dict): return jsonify({"success": False, "message": "Keine Daten"}), 400

        fuel_cost = parse_float(data.get('fuelCostPerKm'), 0.0)
        settings = tracker.set_settings(Settings(fuel_cost_per_km=fuel_cost))
        return jsonify({"success": True, "settings": settings.to_dict()})

    return jsonify(tracker.get_settings().to_dict())

@app.route('/api/shifts', methods=['GET'])
def list_shifts():
    return jsonify([s.to_dict() for s in tracker.list_shifts()])

@app.route('/api/shift', methods=['POST'])
def save_shift():
    d = request.get_json(silent=True)
    if not d or not isinstance(d, dict): return jsonify({"success": False, "message": "Keine Daten empfangen"}), 400

    if d.get('id'):
        shift = tracker.update_shift(d['id'], d)
    else:
        shift = tracker.create_shift(d)
    return jsonify({"success": True, "shift": shift.to_dict()})

@app.route('/api/shift/<int:id>', methods=['PUT'])
def update_shift(id):
    d = request.get_json(silent=True)
    if not d or not isinstance(d, dict): return jsonify({"success": False, "message": "Keine Daten empfangen"}), 400

    shift = tracker.update_shift(id, d)
    return jsonify({"success": True, "shift": shift.to_dict()})

@app.route('/api/stats/week', methods=['GET'])
def week_stats():
    summary = tracker.current_week_summary(request.args.get('date'))
    return jsonify(summary.to_dict())

@app.route('/api/backup', methods=['GET'])
def export_backup():
    payload = json.dumps(tracker.export_backup(), indent=2)
    return Response(
        payload,
        mimetype='application/json',
        headers={'Content-Disposition': 'attachment; filename=courier-tracker-backup.json'}
    )

@app.route('/api/backup', methods=['POST'])
def import_backup():
    if 'file' in request.files:
        raw = request.files['file'].read()
    else:
        raw = request.get_data()

    try:
        result = tracker.import_backup(raw)
    except TrackerError:
        raise
    except Exception as e:
        app.logger.error(f"IMPORT ERROR: {e}", exc_info=True)
        return jsonify({"success": False, "message": "Fehler beim Import."}), 500

    return jsonify({"success": True, "message": f"{result['shifts']} Schichten importiert.", **result})

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5000, debug=False)
