import logging
from pathlib import Path

from flask import (
    Blueprint,
    Flask,
    current_app,
    flash,
    g,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)
from werkzeug.exceptions import HTTPException

from cart import CartStateManager
from catalog import SORT_ORDERS, CatalogService
from client_storage import SessionStorage
from errors import AuthenticationError, AuthorizationError, NotFoundError, ShopError, ValidationError
from identity import IdentityService
from logging_config import log_action, setup_logging
from session_guard import SessionGuard
from settings import Settings
from store import AUDIT_LOG, ensure_files

logger = logging.getLogger("shopease.app")

shop = Blueprint("shop", __name__)


def create_app(test_config=None):
    """Build the storefront; ``test_config`` overrides Settings defaults."""
    app = Flask(__name__)
    app.config.from_mapping(Settings.as_config())
    if test_config:
        app.config.update(test_config)

    data_dir = Path(app.config["DATA_DIR"])
    setup_logging(app.config["LOGS_DIR"])
    ensure_files(data_dir, {
        "name": app.config["DEFAULT_ADMIN_NAME"],
        "email": app.config["DEFAULT_ADMIN_EMAIL"],
        "password": app.config["DEFAULT_ADMIN_PASSWORD"],
    })

    app.extensions["catalog"] = CatalogService(data_dir)
    app.extensions["identity"] = IdentityService(data_dir)
    app.config["AUDIT_LOG"] = data_dir / AUDIT_LOG
    app.register_blueprint(shop)
    logger.info("ShopEase ready, data_dir=%s", data_dir)
    return app


#      Utilities
def catalog() -> CatalogService:
    return current_app.extensions["catalog"]


def identity() -> IdentityService:
    return current_app.extensions["identity"]


def audit(event: str, **fields):
    log_action(current_app.config["AUDIT_LOG"], event, **fields)


def is_api_request() -> bool:
    return request.path.startswith("/api/")


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def form_int(name: str, default: int) -> int:
    try:
        return int(request.form.get(name, default))
    except (TypeError, ValueError):
        return default


def require_admin():
    """Stop the request unless an admin is signed in."""
    if not g.guard.is_authenticated:
        raise AuthenticationError("Sign in required")
    if not g.guard.is_admin:
        raise AuthorizationError("Admin access required")


def _on_cart_change(cart: CartStateManager, action: str):
    audit(f"cart_{action}", items=len(cart), count=cart.item_count(),
          total=f"{cart.get_cart_total():.2f}")


def _on_session_change(guard: SessionGuard, action: str):
    audit(f"session_{action}", user=guard.user.email if guard.user else "-")


#      Per-request state
@shop.before_app_request
def load_client_state():
    """Build this session's cart and guard, restore them, then gate the path."""
    cfg = current_app.config
    storage = SessionStorage()

    g.cart = CartStateManager(storage, key=cfg["CART_STORAGE_KEY"])
    g.cart.load_cart()
    g.cart.subscribe(_on_cart_change)

    g.guard = SessionGuard(
        storage,
        key=cfg["USER_STORAGE_KEY"],
        public_paths=cfg["PUBLIC_PATHS"],
        admin_prefix=cfg["ADMIN_PREFIX"],
        login_path=cfg["LOGIN_PATH"],
        sign_in_path=cfg["SIGN_IN_PATH"],
    )
    g.guard.restore()
    g.guard.subscribe(_on_session_change)

    if any(request.path == p or request.path.startswith(p + "/") for p in cfg["UNGUARDED_PREFIXES"]):
        return None
    admission = g.guard.admit(request.path)
    if admission.pending:
        return render_template("loading.html"), 503
    if not admission.allowed:
        logger.info("Redirecting %s to %s", request.path, admission.redirect_to)
        flash("Please sign in to continue.", "error")
        return redirect(admission.redirect_to)
    return None


# Inject cart badge and signed-in user into all templates (navbar)
@shop.app_context_processor
def inject_client_state():
    cart = g.get("cart")
    guard = g.get("guard")
    return {
        "cart_count": cart.item_count() if cart else 0,
        "cart_total": cart.get_cart_total() if cart else 0.0,
        "current_user": guard.current_user if guard else None,
    }


#      Error handling
@shop.app_errorhandler(ShopError)
def handle_shop_error(err: ShopError):
    if is_api_request():
        return jsonify({"error": err.message}), err.status_code
    flash(err.message, "error")
    if request.path.startswith(current_app.config["ADMIN_PREFIX"]) and g.get("guard") and g.guard.is_admin:
        return redirect(url_for("shop.admin_dashboard"))
    return redirect(url_for("shop.catalog_page"))


@shop.app_errorhandler(HTTPException)
def handle_http_error(err: HTTPException):
    if is_api_request():
        return jsonify({"error": err.description}), err.code
    return err


@shop.app_errorhandler(Exception)
def handle_unexpected_error(err: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.path, exc_info=err)
    if is_api_request():
        return jsonify({"error": "Internal server error"}), 500
    return render_template("error.html"), 500


#        Public routes
@shop.route("/")
def catalog_page():
    """Product grid with substring search, category filter and sort."""
    q = (request.args.get("q") or "").strip().lower()
    cat = (request.args.get("category") or "").strip()
    sort = request.args.get("sort", "featured")
    if sort not in SORT_ORDERS:
        sort = "featured"

    products = catalog().browse(category=cat or None, sort=sort)
    if q:
        products = [p for p in products if q in str(p.get("name", "")).lower()]
    return render_template("catalog.html", products=products, categories=catalog().categories(),
                           q=q, cat=cat, sort=sort, sort_orders=SORT_ORDERS)


@shop.route("/products")
def products_index():
    return redirect(url_for("shop.catalog_page"))


@shop.route("/products/<product_id>")
def product_detail(product_id):
    try:
        product = catalog().get_product(product_id)
    except NotFoundError:
        flash("Product not found.", "error")
        return redirect(url_for("shop.catalog_page"))
    return render_template("product.html", product=product,
                           similar=catalog().similar_products(product))


@shop.route("/cart")
def view_cart():
    return render_template("cart.html", entries=g.cart.entries(), total=g.cart.get_cart_total())


@shop.route("/cart/add", methods=["POST"])
def cart_add():
    pid = request.form.get("product_id", "").strip()
    qty = max(1, form_int("qty", 1))
    try:
        product = catalog().get_snapshot(pid)
    except NotFoundError:
        flash("Product not found.", "error")
        return redirect(url_for("shop.catalog_page"))

    g.cart.add_to_cart(product, qty)
    flash("Item added to cart.", "ok")
    return redirect(url_for("shop.view_cart"))


@shop.route("/cart/update", methods=["POST"])
def cart_update():
    pid = request.form.get("product_id", "").strip()
    g.cart.update_quantity(pid, form_int("qty", 1))
    return redirect(url_for("shop.view_cart"))


@shop.route("/cart/remove", methods=["POST"])
def cart_remove():
    g.cart.remove_from_cart(request.form.get("product_id", "").strip())
    return redirect(url_for("shop.view_cart"))


@shop.route("/cart/clear", methods=["POST"])
def cart_clear():
    g.cart.clear_cart()
    flash("Cart cleared.", "ok")
    return redirect(url_for("shop.view_cart"))


@shop.route("/checkout", methods=["POST"])
def checkout():
    # placeholder: orders are not taken yet
    flash("Checkout is not available yet.", "error")
    return redirect(url_for("shop.view_cart"))


#        Sign-in
@shop.route("/login", methods=["GET", "POST"])
def sign_in():
    """Shopper sign-in; any role may use it."""
    if request.method == "POST":
        email = (request.form.get("email") or "").strip()
        password = request.form.get("password") or ""
        try:
            user = identity().authenticate(email, password, require_admin=False)
        except ShopError as err:
            audit("login_failed", user=email or "-", reason=err.status_code)
            flash(err.message, "error")
            return _render_login(email, admin=False), err.status_code
        g.guard.login(user)
        flash(f"Welcome, {user['name']}.", "ok")
        return redirect(url_for("shop.view_cart"))

    if g.guard.is_authenticated:
        return redirect(url_for("shop.catalog_page"))
    return _render_login("", admin=False)


def _render_login(email: str, admin: bool):
    if admin:
        return render_template("login.html", email=email, heading="Admin Login",
                               action=url_for("shop.admin_login"),
                               alternate={"url": url_for("shop.sign_in"), "label": "Shopper sign-in"})
    return render_template("login.html", email=email, heading="Sign In",
                           action=url_for("shop.sign_in"),
                           alternate={"url": url_for("shop.admin_login"), "label": "Admin login"})


#        Admin
@shop.route("/admin/login", methods=["GET", "POST"])
def admin_login():
    if request.method == "POST":
        email = (request.form.get("email") or "").strip()
        password = request.form.get("password") or ""
        try:
            user = identity().authenticate(email, password, require_admin=True)
        except ShopError as err:
            audit("admin_login_failed", user=email or "-", reason=err.status_code)
            flash(err.message, "error")
            return _render_login(email, admin=True), err.status_code
        g.guard.login(user)
        flash(f"Welcome, {user['name']}.", "ok")
        return redirect(url_for("shop.admin_dashboard"))

    if g.guard.is_admin:
        return redirect(url_for("shop.admin_dashboard"))
    return _render_login("", admin=True)


@shop.route("/admin/logout")
@shop.route("/logout")
def admin_logout():
    was_admin = g.guard.is_admin
    target = g.guard.logout()
    if not was_admin:
        target = current_app.config["SIGN_IN_PATH"]
    flash("Logged out.", "ok")
    return redirect(target)


@shop.route("/admin")
def admin_index():
    return redirect(url_for("shop.admin_dashboard"))


@shop.route("/admin/dashboard")
def admin_dashboard():
    return render_template("dashboard.html", users=identity().list_users(),
                           products=catalog().list_products())


@shop.route("/admin/users", methods=["POST"])
def admin_create_user():
    user = identity().create_user({
        "name": request.form.get("name", ""),
        "email": request.form.get("email", ""),
        "role": request.form.get("role", "user"),
        "password": request.form.get("password", ""),
    })
    audit("admin_add_user", by=g.guard.user.email, user_id=user["id"])
    flash("User added successfully.", "ok")
    return redirect(url_for("shop.admin_dashboard"))


@shop.route("/admin/users/<user_id>/update", methods=["POST"])
def admin_update_user(user_id):
    identity().update_user(user_id, {
        "name": request.form.get("name", ""),
        "email": request.form.get("email", ""),
        "role": request.form.get("role"),
        "password": request.form.get("password", ""),
    })
    audit("admin_update_user", by=g.guard.user.email, user_id=user_id)
    flash("User updated successfully.", "ok")
    return redirect(url_for("shop.admin_dashboard"))


@shop.route("/admin/users/<user_id>/delete", methods=["POST"])
def admin_delete_user(user_id):
    identity().delete_user(user_id)
    audit("admin_delete_user", by=g.guard.user.email, user_id=user_id)
    flash("User deleted successfully.", "ok")
    return redirect(url_for("shop.admin_dashboard"))


#        JSON API: products
@shop.route("/api/products")
def api_list_products():
    return jsonify(catalog().list_products())


@shop.route("/api/products", methods=["POST"])
def api_create_product():
    require_admin()
    return jsonify(catalog().create_product(json_body())), 201


@shop.route("/api/products/<product_id>")
def api_get_product(product_id):
    return jsonify(catalog().get_product(product_id))


@shop.route("/api/products/<product_id>", methods=["PUT"])
def api_update_product(product_id):
    require_admin()
    return jsonify(catalog().update_product(product_id, json_body()))


@shop.route("/api/products/<product_id>", methods=["DELETE"])
def api_delete_product(product_id):
    require_admin()
    catalog().delete_product(product_id)
    return jsonify({"success": True})


#        JSON API: users and auth
@shop.route("/api/users")
def api_list_users():
    require_admin()
    return jsonify(identity().list_users())


@shop.route("/api/users", methods=["POST"])
def api_create_user():
    require_admin()
    return jsonify(identity().create_user(json_body())), 201


@shop.route("/api/users/<user_id>")
def api_get_user(user_id):
    require_admin()
    return jsonify(identity().get_user(user_id))


@shop.route("/api/users/<user_id>", methods=["PUT"])
def api_update_user(user_id):
    require_admin()
    return jsonify(identity().update_user(user_id, json_body()))


@shop.route("/api/users/<user_id>", methods=["DELETE"])
def api_delete_user(user_id):
    require_admin()
    identity().delete_user(user_id)
    return jsonify({"success": True})


@shop.route("/api/auth/login", methods=["POST"])
def api_login():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    user = identity().authenticate(data.get("email"), data.get("password"), require_admin=True)
    g.guard.login(user)
    return jsonify(user)


@shop.route("/api/auth/logout", methods=["POST"])
def api_logout():
    g.guard.logout()
    return jsonify({"success": True})


#        JSON API: cart
def _quantity(data: dict, default=None) -> int:
    qty = data.get("quantity", default)
    if not isinstance(qty, int) or isinstance(qty, bool):
        raise ValidationError("Quantity must be an integer")
    return qty


@shop.route("/api/cart")
def api_get_cart():
    return jsonify(g.cart.to_dict())


@shop.route("/api/cart/items", methods=["POST"])
def api_add_cart_item():
    data = json_body()
    qty = _quantity(data, default=1)
    if qty < 1:
        raise ValidationError("Quantity must be at least 1")
    product = catalog().get_snapshot(str(data.get("product_id", "")))
    g.cart.add_to_cart(product, qty)
    return jsonify(g.cart.to_dict())


@shop.route("/api/cart/items/<product_id>", methods=["PATCH"])
def api_update_cart_item(product_id):
    g.cart.update_quantity(product_id, _quantity(json_body()))
    return jsonify(g.cart.to_dict())


@shop.route("/api/cart/items/<product_id>", methods=["DELETE"])
def api_remove_cart_item(product_id):
    g.cart.remove_from_cart(product_id)
    return jsonify(g.cart.to_dict())


@shop.route("/api/cart", methods=["DELETE"])
def api_clear_cart():
    g.cart.clear_cart()
    return jsonify(g.cart.to_dict())


if __name__ == "__main__":
    create_app().run(debug=Settings.DEBUG)
