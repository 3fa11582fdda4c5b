from flask import Flask, request, jsonify
from flask_cors import CORS
import asyncio
import logging
import threading
from datetime import datetime
import traceback

from hazard_config import Settings
from hazard_errors import ConfigurationError
from hazard_merger import hazard_level_for
from hazard_orchestrator import DataOrchestrator
from compound_assessment import CompoundAssessor
from risk_classifier import CompoundFacts, classify

settings = Settings.from_env()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

ENDPOINTS = [
    "GET  /api/health",
    "GET|POST /api/hazard",
    "POST /api/risk",
    "GET  /api/stats",
]


class EngineLoop:
    """One background asyncio loop shared by all request threads"""

    def __init__(self):
        self._loop = None
        self._thread = None
        self._lock = threading.Lock()

    def _ensure_started(self):
        with self._lock:
            if self._loop is None:
                self._loop = asyncio.new_event_loop()
                self._thread = threading.Thread(
                    target=self._loop.run_forever, name="hazard-engine-loop", daemon=True
                )
                self._thread.start()
                logger.info("[Engine] Background event loop started")
            return self._loop

    def run(self, coro, timeout=None):
        loop = self._ensure_started()
        return asyncio.run_coroutine_threadsafe(coro, loop).result(timeout)


def _request_data():
    """JSON body for POST, query string for GET"""
    if request.method == 'POST':
        return request.get_json(silent=True) or {}
    return request.args.to_dict()


def _as_bool(value):
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def create_app(orchestrator=None, engine=None):
    app = Flask(__name__)
    CORS(app, origins=settings.cors_origins)

    orchestrator = orchestrator or DataOrchestrator.from_settings(settings)
    assessor = CompoundAssessor(orchestrator)
    engine = engine or EngineLoop()
    app.config["ORCHESTRATOR"] = orchestrator

    @app.route('/api/health', methods=['GET'])
    def health():
        """Health check with component status"""
        try:
            from rdkit import Chem
            Chem.MolFromSmiles('CCO')
            rdkit_status = "operational"
        except Exception as e:
            rdkit_status = f"error: {str(e)}"

        return jsonify({
            "status": "ok",
            "message": "Compounding hazard engine is running",
            "timestamp": datetime.now().isoformat(),
            "components": {
                "rdkit": rdkit_status,
                "niosh_entries": len(orchestrator.strategies.niosh_table),
                "endpoints": ENDPOINTS,
            }
        }), 200

    @app.route('/api/hazard', methods=['GET', 'POST'])
    def get_hazard():
        """Hazard assessment for a single ingredient"""
        data = _request_data()
        name = str(data.get('name', '')).strip()
        if not name:
            return jsonify({"error": "Ingredient name is required"}), 400

        logger.info(f"Hazard assessment requested for: {name}")
        try:
            assessment = engine.run(orchestrator.get_comprehensive_hazard_data(
                name, force_refresh=_as_bool(data.get('forceRefresh', False))
            ))
        except ConfigurationError as e:
            logger.error(f"Hazard engine misconfigured: {str(e)}\n{traceback.format_exc()}")
            return jsonify({"error": "Hazard engine configuration error", "details": str(e)}), 500

        return jsonify({
            "assessment": assessment.to_dict(),
            "hazardLevel": hazard_level_for(assessment).value,
        })

    @app.route('/api/risk', methods=['POST'])
    def get_risk():
        """NAPRA risk level from full compound facts or from ingredient names"""
        data = request.get_json(silent=True) or {}
        try:
            if 'activeIngredients' in data:
                facts = CompoundFacts.from_dict(data)
                level, rationale = classify(facts)
                return jsonify({
                    "compoundName": facts.compound_name,
                    "riskLevel": level.value,
                    "riskLevelLabel": level.label,
                    "rationale": rationale,
                })

            ingredients = [str(i).strip() for i in data.get('ingredients', []) if str(i).strip()]
            if not ingredients:
                return jsonify({"error": "Either activeIngredients or ingredients is required"}), 400

            result = engine.run(assessor.assess_compound(
                data.get('compoundName', ''),
                ingredients,
                physical_characteristics=data.get('physicalCharacteristics', []),
                din=str(data.get('din', '')),
                equipment_required=data.get('equipmentRequired', []),
                force_refresh=_as_bool(data.get('forceRefresh', False)),
            ))
            return jsonify(result.to_dict())

        except (TypeError, AttributeError, ValueError) as e:
            logger.warning(f"Malformed risk request: {str(e)}")
            return jsonify({"error": "Malformed compound data", "details": str(e)}), 400
        except ConfigurationError as e:
            logger.error(f"Hazard engine misconfigured: {str(e)}\n{traceback.format_exc()}")
            return jsonify({"error": "Hazard engine configuration error", "details": str(e)}), 500

    @app.route('/api/stats', methods=['GET'])
    def get_stats():
        """Strategy and cache statistics for the dashboard"""
        return jsonify(orchestrator.get_stats())

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors"""
        return jsonify({
            "error": "Endpoint not found",
            "available_endpoints": ENDPOINTS
        }), 404

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors"""
        logger.error(f"Internal server error: {str(error)}")
        return jsonify({
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please check the logs."
        }), 500

    return app


if __name__ == '__main__':
    app = create_app()
    logger.info(f"Hazard engine backend running at http://localhost:{settings.port}")
    app.run(
        host='0.0.0.0',
        port=settings.port,
        debug=False,
        threaded=True
    )
