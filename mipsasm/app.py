# mipsasm/app.py
import logging
import os

from flask import Flask, jsonify, request
from flask_cors import CORS

from mipsasm.mips_assembler import MipsAssembler
from mipsasm.mips_consts import DEFAULT_STARTING_ADDRESS
from mipsasm.mips_disassembler import MipsDisassembler
from mipsasm.mips_errors import InvalidStartingAddress

logger = logging.getLogger(__name__)

CORS_ORIGINS = [o.strip() for o in os.environ.get("MIPSASM_CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

app = Flask(__name__)
CORS(app, resources={r"/api/*": {"origins": CORS_ORIGINS}})


@app.route('/')
def index():
    return "MIPS Assembler Backend is running!"


@app.route('/api/ping', methods=['GET'])
def ping():
    logger.debug("Ping endpoint called")
    return jsonify({"message": "pong"})


@app.route('/api/assemble', methods=['POST'])
def handle_assemble():
    data = request.get_json(silent=True)
    if not data or not isinstance(data.get('assembly'), str):
        return jsonify({"errors": [{"message": "Missing 'assembly' key in request."}]}), 400
    assembly_code = data['assembly']
    starting_address = data.get('startingAddress', DEFAULT_STARTING_ADDRESS)
    logger.debug(f"Received assembly at {starting_address}: {assembly_code[:100]}...")

    # Fresh instance per request; errors and labels are per-run state
    assembler = MipsAssembler()
    try:
        instructions = assembler.assemble(assembly_code, starting_address)
    except InvalidStartingAddress as e:
        logger.warning(f"Assembly rejected: {e.message}")
        return jsonify({"errors": [{"message": e.message}]}), 400

    if assembler.errors:
        logger.warning(f"Assembly finished with errors: {assembler.errors}")
    return jsonify({
        "instructions": [i.to_dict() if i is not None else None for i in instructions],
        "labels": dict(assembler.labels),
        "errors": assembler.errors,
    })


@app.route('/api/disassemble', methods=['POST'])
def handle_disassemble():
    data = request.get_json(silent=True)
    if not data or 'machine_code' not in data or not isinstance(data['machine_code'], list):
        return jsonify({"errors": [{"message": "Missing/invalid 'machine_code' key (must be list of hex strings)."}]}), 400
    machine_code_lines = data['machine_code']
    starting_address = data.get('startingAddress', DEFAULT_STARTING_ADDRESS)
    logger.debug(f"Received machine code for disassembly: {machine_code_lines[:5]}")
    try:
        result = MipsDisassembler().disassemble(machine_code_lines, starting_address)
    except InvalidStartingAddress as e:
        return jsonify({"errors": [{"message": e.message}]}), 400
    return jsonify(result)


if __name__ == '__main__':
    # Or: FLASK_APP=mipsasm.app python -m flask run --port 5001
    app.run(debug=False, port=int(os.environ.get("MIPSASM_PORT", "5001")))
