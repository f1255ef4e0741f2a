from templating.engine import TemplateEngine, PLACEHOLDER_RE, find_placeholders, stringify
