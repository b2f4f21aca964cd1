# -*- coding: utf-8 -*-

# Served at GET / without auth so a phone can load it and enter the token.
CONTROL_PAGE_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>Pomodoro Remote</title>
    <style>
      body { font-family: system-ui, -apple-system, "Segoe UI", Roboto, Arial, sans-serif; margin: 0; background: #0b1220; color: #e8eefc; }
      .wrap { max-width: 520px; margin: 0 auto; padding: 16px; }
      .card { background: rgba(255,255,255,0.06); border: 1px solid rgba(255,255,255,0.10); border-radius: 16px; padding: 16px; }
      .title { font-size: 18px; font-weight: 650; margin: 0 0 10px; }
      .row { display: flex; gap: 10px; align-items: center; justify-content: space-between; }
      .big { font-size: 44px; font-weight: 750; }
      .muted { color: rgba(232,238,252,0.72); font-size: 13px; }
      .btns { display: grid; grid-template-columns: 1fr 1fr; gap: 10px; margin-top: 14px; }
      button { border: 1px solid rgba(255,255,255,0.14); background: rgba(255,255,255,0.08); color: #e8eefc; padding: 12px 14px; border-radius: 12px; font-size: 16px; font-weight: 650; }
      button.primary { background: rgba(46,160,255,0.22); border-color: rgba(46,160,255,0.35); }
      button.danger { background: rgba(255,77,77,0.18); border-color: rgba(255,77,77,0.30); }
      .token { box-sizing: border-box; width: 100%; padding: 12px 14px; border-radius: 12px; border: 1px solid rgba(255,255,255,0.14); background: rgba(0,0,0,0.25); color: #e8eefc; font-size: 16px; }
      .sp { height: 12px; }
    </style>
  </head>
  <body>
    <div class="wrap">
      <div class="card">
        <p class="title">Pomodoro Remote</p>
        <div id="auth">
          <p class="muted">Enter the token shown in the desktop app to control the timer.</p>
          <input id="token" class="token" placeholder="Token" autocomplete="off" />
          <div class="sp"></div>
          <button class="primary" id="saveToken">Continue</button>
        </div>
        <div id="main" style="display:none">
          <div class="row">
            <div>
              <div class="muted" id="phase">...</div>
              <div class="big" id="time">--:--</div>
            </div>
            <div class="muted" id="status">...</div>
          </div>
          <div class="btns">
            <button class="primary" id="toggle">Start / Pause</button>
            <button class="danger" id="skip">Skip Phase</button>
          </div>
          <div class="sp"></div>
          <p class="muted">Bookmark this page: the token is kept in the URL as <code>?token=...</code>.</p>
        </div>
      </div>
      <div class="sp"></div>
      <p class="muted">Page not loading? Enable Remote Control in the desktop app and join the same network.</p>
    </div>

    <script>
      const qs = new URLSearchParams(location.search);
      const token = qs.get("token") || "";
      const auth = document.getElementById("auth");
      const main = document.getElementById("main");
      const tokenInput = document.getElementById("token");

      if (token) { auth.style.display = "none"; main.style.display = "block"; }
      tokenInput.value = token;
      document.getElementById("saveToken").addEventListener("click", () => {
        const t = (tokenInput.value || "").trim();
        if (!t) return;
        const u = new URL(location.href);
        u.searchParams.set("token", t);
        location.href = u.toString();
      });

      async function api(path, method) {
        const res = await fetch(path, { method, headers: { "X-Pomodoro-Token": token } });
        if (res.status === 401) throw new Error("Unauthorized (bad token)");
        if (!res.ok) throw new Error("HTTP " + res.status);
        return res.json();
      }

      const labels = { focus: "Focus", short_break: "Short break", long_break: "Long break" };

      function fmt(sec) {
        const m = Math.floor(sec / 60), s = sec % 60;
        return String(m).padStart(2, "0") + ":" + String(s).padStart(2, "0");
      }

      async function refresh() {
        if (!token) return;
        try {
          const st = await api("/api/state", "GET");
          if (st.error) throw new Error(st.error);
          document.getElementById("phase").textContent = labels[st.phase] || st.phase;
          document.getElementById("time").textContent = fmt(st.remainingSeconds);
          document.getElementById("status").textContent = st.isRunning ? "Running" : "Paused";
        } catch (e) {
          document.getElementById("status").textContent = String(e.message || e);
        }
      }

      document.getElementById("toggle").addEventListener("click", async () => {
        try { await api("/api/toggle", "POST"); } finally { await refresh(); }
      });
      document.getElementById("skip").addEventListener("click", async () => {
        try { await api("/api/skip", "POST"); } finally { await refresh(); }
      });

      refresh();
      setInterval(refresh, 1000);
    </script>
  </body>
</html>
"""
