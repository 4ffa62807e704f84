"""HTML documentation and demo page served on ``GET /``."""

from string import Template
from typing import Iterable

_PAGE = Template("""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Email API Documentation</title>
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Helvetica, Arial, sans-serif; padding: 40px; max-width: 800px; margin: 0 auto; color: #333; }
    h1 { color: #0070f3; }
    .container { display: grid; grid-template-columns: 1fr 1fr; gap: 40px; }
    .card { background: #fff; border: 1px solid #eaeaea; border-radius: 10px; padding: 24px; box-shadow: 0 4px 6px rgba(0,0,0,0.05); }
    input, textarea { width: 100%; padding: 10px; margin-bottom: 10px; border: 1px solid #ddd; border-radius: 5px; box-sizing: border-box; }
    button { background: #0070f3; color: white; border: none; padding: 12px 20px; border-radius: 5px; cursor: pointer; font-size: 16px; width: 100%; }
    button:hover { background: #0051a2; }
    pre { background: #f4f4f4; padding: 15px; border-radius: 5px; overflow-x: auto; }
    hr { border: 0; border-top: 1px solid #eaeaea; margin: 20px 0; }
    .status { margin-top: 15px; padding: 10px; border-radius: 5px; display: none; }
    .success { background-color: #d4edda; color: #155724; }
    .error { background-color: #f8d7da; color: #721c24; }
    label { font-weight: bold; font-size: 0.9em; margin-bottom: 5px; display: block; }
  </style>
</head>
<body>
  <h1>Email Sending API</h1>
  <p>Send one email through your own SMTP credentials.</p>

  <div class="container">
    <div>
      <h3>Documentation</h3>
      <p><b>POST /send-mail</b></p>
      <p><code>Content-Type: application/json</code></p>
      <pre>{
  "smtp": {
    "host": "smtp.gmail.com",
    "port": 587,
    "secure": false,
    "user": "your@gmail.com",
    "pass": "APP_PASSWORD"
  },
  "mail": {
    "from": "your@gmail.com",
    "to": "receiver@gmail.com",
    "subject": "Hello",
    "body": "Test email"
  }
}</pre>
      <h3>Response</h3>
      <pre>{
  "success": true,
  "message": "Email sent successfully"
}</pre>
      <h3>Notes</h3>
      <ul>
        <li>Use an app password where your provider requires one</li>
        <li>Ports allowed: $ports</li>
        <li>Rate limit: $max_requests requests / $window_minutes minutes</li>
        <li><code>secure</code> defaults to true on port 465</li>
      </ul>
    </div>

    <div class="card">
      <h3>Try it out</h3>
      <form id="emailForm">
        <label>SMTP Host</label>
        <input type="text" id="host" placeholder="smtp.gmail.com" value="smtp.gmail.com" required>

        <label>SMTP Port</label>
        <input type="number" id="port" placeholder="587" value="587" required>

        <label>SMTP User</label>
        <input type="email" id="user" placeholder="your@gmail.com" required>

        <label>SMTP Password (App Password)</label>
        <input type="password" id="pass" placeholder="App Password" required>

        <hr>

        <label>From</label>
        <input type="email" id="from" placeholder="your@gmail.com" required>

        <label>To</label>
        <input type="email" id="to" placeholder="receiver@gmail.com" required>

        <label>Subject</label>
        <input type="text" id="subject" placeholder="Hello" value="Test Email from API" required>

        <label>Body</label>
        <textarea id="body" rows="3" placeholder="Message content" required>This is a test email.</textarea>

        <button type="submit" id="submitBtn">Send Email</button>
      </form>
      <div id="status" class="status"></div>
    </div>
  </div>

  <script nonce="$nonce">
    document.getElementById('emailForm').addEventListener('submit', async (e) => {
      e.preventDefault();
      const btn = document.getElementById('submitBtn');
      const status = document.getElementById('status');
      const value = (id) => document.getElementById(id).value;

      btn.disabled = true;
      btn.innerText = 'Sending...';
      status.style.display = 'none';

      const data = {
        smtp: {
          host: value('host'),
          port: parseInt(value('port'), 10),
          user: value('user'),
          pass: value('pass')
        },
        mail: {
          from: value('from'),
          to: value('to'),
          subject: value('subject'),
          body: value('body')
        }
      };

      try {
        const res = await fetch('/send-mail', {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify(data)
        });
        const result = await res.json();
        status.style.display = 'block';
        if (res.ok) {
          status.className = 'status success';
          status.innerText = result.message || 'Success';
        } else {
          status.className = 'status error';
          status.innerText = result.error || 'Failed';
        }
      } catch (err) {
        status.style.display = 'block';
        status.className = 'status error';
        status.innerText = 'Network error';
      }

      btn.disabled = false;
      btn.innerText = 'Send Email';
    });
  </script>
</body>
</html>
""")


def render_docs_page(
    nonce: str,
    allowed_ports: Iterable[int],
    max_requests: int,
    window_seconds: float,
) -> str:
    """Render the documentation page; ``nonce`` must match the response CSP."""
    return _PAGE.substitute(
        nonce=nonce,
        ports=", ".join(str(port) for port in sorted(allowed_ports)),
        max_requests=max_requests,
        window_minutes=f"{window_seconds / 60:g}",
    )
