from urllib.parse import urlparse
import socket
from backend.config import SUPABASE_URL
import backend.infra.supabase_client as supabase_client
from backend.academy import repository as academy_repo

TABLES = [
    academy_repo.TRAININGS_TABLE,
    academy_repo.REGISTRATIONS_TABLE,
    academy_repo.SESSIONS_TABLE,
    academy_repo.LOCATIONS_TABLE,
]

def _check_table(client, name: str):
    try:
        res = client.table(name).select("id").limit(1).execute()
        cnt = len(res.data or [])
        return {"ok": True, "rows": cnt}
    except Exception as e:
        return {"ok": False, "error": str(e)}

def health_supabase_info():
    """Diagnostic Supabase: résolution DNS puis lecture d'une ligne par table de l'académie."""
    parsed = urlparse(SUPABASE_URL) if SUPABASE_URL else None
    hostname = parsed.hostname if parsed else None
    dns_ok = None
    dns_error = None
    if hostname:
        try:
            socket.getaddrinfo(hostname, 443)
            dns_ok = True
        except Exception as e:
            dns_ok = False
            dns_error = str(e)

    info = {
        "supabase_url": SUPABASE_URL,
        "hostname": hostname,
        "dns_ok": dns_ok,
        "dns_error": dns_error,
        "connect_ok": False,
        "error": None,
        "tables": {}
    }
    try:
        client = supabase_client.get_service_supabase()
        for t in TABLES:
            info["tables"][t] = _check_table(client, t)
        info["connect_ok"] = True
    except Exception as e:
        info["error"] = str(e)
    return info
