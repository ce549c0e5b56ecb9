"""
Acuity -> PassKit bridge entry point.
"""
import os
import sys
import traceback

print("[Bridge] ========================================")
print("[Bridge] Starting Acuity -> PassKit bridge")
print("[Bridge] ========================================")

# Default to production for hosted deployment
config_name = os.getenv('FLASK_ENV', 'production')
print(f"[Bridge] Config: {config_name}")
print(f"[Bridge] PORT: {os.getenv('PORT', 'not set')}")
print(f"[Bridge] REDIS_URL: {'set' if os.getenv('REDIS_URL') else 'NOT SET'}")

try:
    from bridge import create_app
    app = create_app(config_name)
    print(f"[Bridge] Routes: {len(list(app.url_map.iter_rules()))}")
except Exception as e:
    print(f"[Bridge] FATAL ERROR during app creation: {e}")
    traceback.print_exc()
    sys.exit(1)

if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=os.getenv('FLASK_ENV') == 'development'
    )
