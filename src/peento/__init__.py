"""peento -- an extensible web application shell composed from plugins.

Plugins attach named capabilities to a shared host: template-backed routes,
named *calls* wrapped in before/after hook pipes, template filters and
locals, and view/asset search roots with fallback resolution.

Typical workflow::

    peento serve --plugin ./plugins/blog --debug

Modules:
    application: The host -- ``use()``, ``start()``, ``call()``, ``listen()``.
    pipeline: Named calls and their hook pipes.
    plugins: Plugin resolution, attach, and lifecycle.
    resources: View/asset resolution across plugin search roots.
    rendering: Jinja2 rendering through the resource resolver.
    routes: Plugin routes added to the HTTP app at startup.
    db: SQLAlchemy engine with statement logging.
    namespace: The shared dotted-path namespace.
    models: Pydantic configuration models.
    config: Config file loading and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stderr diagnostics with Rich support.
    app: Typer CLI entry point.
"""

__version__ = "0.3.0"
