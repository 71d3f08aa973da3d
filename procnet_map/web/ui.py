VIS_NETWORK_URL = "https://unpkg.com/vis-network@9.1.6/standalone/umd/vis-network.min.js"

PAGE = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8"/>
<title>%(title)s</title>
<script src="%(vis)s"></script>
<style>
  html, body { margin:0; height:100%%; }
  body { display:flex; flex-direction:column; background:#101418; color:#dfe3e8;
         font:14px ui-sans-serif,system-ui,"Segoe UI",Arial; }
  header { display:flex; align-items:center; gap:12px; padding:8px 14px; border-bottom:1px solid #2a2f36; }
  header h1 { font-size:16px; margin:0 12px 0 0; }
  header button, header a { color:#dfe3e8; background:#1d232a; border:1px solid #39414b;
                            border-radius:6px; padding:3px 10px; text-decoration:none; cursor:pointer; }
  #rec { color:#e84a5f; visibility:hidden; }
  #status { margin-left:auto; color:#8b949e; }
  main { flex:1; display:flex; min-height:0; }
  #net { flex:1; }
  aside { width:280px; padding:10px 14px; border-left:1px solid #2a2f36; overflow:auto; white-space:pre-wrap; }
</style>
</head>
<body>
<header>
  <h1>%(header)s</h1>
  <button data-action="/api/record/start">Start recording</button>
  <button data-action="/api/record/stop">Stop recording</button>
  <button data-action="/api/live">Live</button>
  <a href="/api/edges.csv">Export CSV</a>
  <label><input type="checkbox" id="same-host" checked> same-host links</label>
  <span id="rec">&#9679; recording</span>
  <span id="status"></span>
</header>
<main>
  <div id="net"></div>
  <aside id="details">Select a process or a link.</aside>
</main>
<script>
(() => {
  const nodes = new vis.DataSet();
  const links = new vis.DataSet();
  let latest = {nodes: [], edges: []};

  const network = new vis.Network(document.getElementById('net'), {nodes, edges: links}, {
    physics: {stabilization: true, barnesHut: {gravitationalConstant: -18000, springLength: 170}},
    nodes: {shadow: true, font: {color: '#101418', multi: false}},
    edges: {font: {align: 'top', color: '#dfe3e8', strokeWidth: 0}},
    interaction: {hover: true},
  });
  network.once('stabilized', () => network.storePositions());

  const sameHost = document.getElementById('same-host');

  function sync(set, items) {
    const keep = new Set(items.map(i => i.id));
    set.getIds().filter(id => !keep.has(id)).forEach(id => set.remove(id));
    set.update(items);
  }

  function draw() {
    const edges = sameHost.checked ? latest.edges : latest.edges.filter(e => !Array.isArray(e.dashes));
    sync(nodes, latest.nodes);
    sync(links, edges);
    const conns = edges.filter(e => e.proto).length;
    document.getElementById('status').textContent = `${latest.nodes.length} nodes, ${conns} links`;
  }

  async function poll() {
    try {
      latest = await (await fetch('/api/graph')).json();
      draw();
    } catch (err) {
      document.getElementById('status').textContent = 'update failed: ' + err;
    }
  }

  network.on('select', params => {
    const item = params.edges.length && !params.nodes.length
      ? links.get(params.edges[0]) : nodes.get(params.nodes[0]);
    document.getElementById('details').textContent = item ? item.title : 'Select a process or a link.';
  });

  document.querySelectorAll('[data-action]').forEach(btn => btn.addEventListener('click', async () => {
    const state = await (await fetch(btn.dataset.action, {method: 'POST'})).json();
    const rec = document.getElementById('rec');
    rec.textContent = state.recording ? '\u25CF recording' : 'recorded sample';
    rec.style.visibility = state.recording || state.holding ? 'visible' : 'hidden';
  }));
  sameHost.addEventListener('change', draw);

  poll();
  setInterval(poll, 1500);
})();
</script>
</body>
</html>
"""

def render_html(udp_enabled: bool) -> str:
    protocols = "TCP/UDP" if udp_enabled else "TCP"
    return PAGE % {
        "title": f"Process Socket Map ({protocols})",
        "header": f"Process ↔ {protocols} Map",
        "vis": VIS_NETWORK_URL,
    }
