"""HTML pages served to the browser during link and relink flows.

Each page loads Plaid's hosted Link widget with the link token and posts the
outcome back to the route that served it.
"""

_PAGE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>plaid-mirror</title>
    <style>
    .alert-success {
      font-size: 1.2em;
      font-family: Arial, Helvetica, sans-serif;
      background-color: #008000;
      color: #fff;
      display: flex;
      justify-content: center;
      align-items: center;
      border-radius: 15px;
      width: 100%;
      height: 100%;
    }
    .hidden {
      visibility: hidden;
    }
    </style>
  </head>
  <body>
    <script src="https://cdn.plaid.com/link/v2/stable/link-initialize.js"></script>
    <script type="text/javascript">
      function report(fields) {
        return fetch('{{ callback_path }}', {
          method: 'POST',
          body: new URLSearchParams(fields),
        }).finally(function () {
          document.getElementById('alert').classList.remove('hidden');
        });
      }

      var handler = Plaid.create({
        token: {{ link_token|tojson }},
        __HANDLERS__
      });
      handler.open();
    </script>

    <div id="alert" class="alert-success hidden">
      <div>
        <h2>All done here!</h2>
        <p>You can close this window and go back to plaid-mirror.</p>
      </div>
    </div>
  </body>
</html>
"""

LINK_PAGE = _PAGE.replace(
    "__HANDLERS__",
    """onSuccess: function (public_token, metadata) {
          report({public_token: public_token});
        },
        onExit: function (err, metadata) {
          report({public_token: ''});
        },"""
)

# Update mode keeps the existing access token, so success needs no exchange.
RELINK_PAGE = _PAGE.replace(
    "__HANDLERS__",
    """onSuccess: function (public_token, metadata) {
          report({});
        },
        onExit: function (err, metadata) {
          if (err != null) {
            report({error: err.error_code + ': ' + (err.display_message || err.error_message)});
          } else {
            report({});
          }
        },"""
)
