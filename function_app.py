import azure.functions as func

from src.function_blueprints.backgrounds_blueprint import bp as backgrounds_bp
from src.function_blueprints.remove_bg_blueprint import bp as remove_bg_bp
from src.function_blueprints.render_moment_blueprint import bp as render_moment_bp
from src.shared.logging_utils import configure_logging

app = func.FunctionApp()

configure_logging()

app.register_functions(remove_bg_bp)
app.register_functions(backgrounds_bp)
app.register_functions(render_moment_bp)
