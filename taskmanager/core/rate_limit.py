"""
Rate limit muy simple en memoria (por identificador + ruta).

Uso típico:
- Global por IP: limiter.allow((ip, "*"), limit=100, window_seconds=900)
- Intentos de auth: limiter.allow((ip, "/auth/login"), limit=5, window_seconds=900)
"""
from threading import Lock
from time import time
from typing import Dict, List, Tuple

Key = Tuple[str, str]


class RateLimiter:
    """Ventana deslizante por clave; una instancia por aplicación.

    Cada `sweep_every` llamadas a `allow` se descartan las claves cuyo último
    intento ya salió de su ventana (IPs que no vuelven).
    """

    def __init__(self, sweep_every: int = 256) -> None:
        self._bucket: Dict[Key, List[float]] = {}
        self._windows: Dict[Key, float] = {}
        self._sweep_every = max(1, sweep_every)
        self._calls = 0
        self._lock = Lock()

    def allow(self, key: Key, limit: int = 5, window_seconds: int = 60) -> bool:
        """Devuelve True si se permite la acción y registra el intento.

        key: (identificador, ruta)
        limit: máximo de intentos dentro de la ventana
        window_seconds: ventana de tiempo en segundos
        """
        now = time()
        with self._lock:
            self._calls += 1
            if self._calls % self._sweep_every == 0:
                self._sweep(now)
            # elimina timestamps fuera de ventana
            q = [t for t in self._bucket.get(key, ()) if now - t < window_seconds]
            self._windows[key] = window_seconds
            if len(q) >= limit:
                self._bucket[key] = q
                return False
            q.append(now)
            self._bucket[key] = q
            return True

    def forget(self, key: Key) -> None:
        """Descarta el intento más reciente (p. ej. un login exitoso no cuenta)."""
        with self._lock:
            q = self._bucket.get(key)
            if q:
                q.pop()
            if not q:
                self._drop(key)

    def reset(self) -> None:
        """Limpia el bucket (útil en tests o reinicios)."""
        with self._lock:
            self._bucket.clear()
            self._windows.clear()

    def tracked_keys(self) -> int:
        """Claves retenidas en memoria."""
        with self._lock:
            return len(self._bucket)

    def _sweep(self, now: float) -> None:
        stale = [k for k, q in self._bucket.items() if not q or now - q[-1] >= self._windows.get(k, 0)]
        for k in stale:
            self._drop(k)

    def _drop(self, key: Key) -> None:
        self._bucket.pop(key, None)
        self._windows.pop(key, None)
