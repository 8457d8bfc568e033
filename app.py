import logging
import os
import socket
import time

import streamlit as st

import database
import storage
from auth import create_auth_user, sign_in, sign_in_with_badge, sign_out
from bulk_import import (
    LABELS_EXPORT_FILE,
    PRODUCTS_EXPORT_FILE,
    USERS_EXPORT_FILE,
    USERS_TEMPLATE_FILE,
    clean_text,
    decode_upload,
    import_products,
    import_users,
    products_export_csv,
    qr_codes_export_csv,
    user_email,
    users_export_csv,
    users_template_csv,
)
from models import ROLES
from registrations import (
    ALL,
    SORT_FIELDS,
    RegistrationError,
    build_registration,
    filter_products,
    filter_registrations,
    filter_users,
    sort_registrations,
    top_products,
    top_users,
    usage_count,
)
from settings_store import load_settings, save_settings, scanner_patterns
from stores import COLLECTIONS, AppState, Replace, category_name, find_product, reduce
from utils.code_generator import generate_product_code
from utils.qr_generator import qr_png_bytes
from utils.scanner import clean_code, no_match_message, resolve_product


logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_TEXT = "Er is een onverwachte fout opgetreden"

USER_PAGES = ["Registreren", "Geschiedenis"]
ADMIN_PAGES = [
    "Producten",
    "Categorieën",
    "Gebruikers",
    "Locaties",
    "Doelen",
    "Statistieken",
    "Instellingen",
]
SORT_LABELS = {"date": "Datum", "user": "Gebruiker", "product": "Product", "location": "Locatie"}


def detect_lan_ip():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("8.8.8.8", 80))
        return sock.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        sock.close()


def compute_web_base_url(settings):
    public_url = clean_text(settings.get("public_base_url", "")).rstrip("/")
    if public_url:
        return public_url
    return f"http://{detect_lan_ip()}:{int(settings.get('flask_port', 5000))}"


# -----------------------------
# Messages
# -----------------------------
def flash(message, error=False):
    seconds = settings.get("error_seconds" if error else "message_seconds", 3)
    st.session_state["flash"] = {
        "text": message,
        "error": error,
        "until": time.time() + float(seconds),
    }


def show_flash():
    message = st.session_state.get("flash")
    if not message:
        return
    if time.time() > message["until"]:
        st.session_state.pop("flash", None)
        return
    if message["error"]:
        st.error(message["text"])
    else:
        st.success(message["text"])


def report(result, success_message):
    """Flash the outcome of a data service call; True when it succeeded."""
    if result.error:
        flash(result.error, error=True)
        return False
    flash(success_message)
    return True


# -----------------------------
# State
# -----------------------------
def _replacer(store, collection):
    def replace_collection(items):
        store["state"] = reduce(store["state"], Replace(collection, items))

    return replace_collection


def refresh(store, *collections):
    for collection in collections or COLLECTIONS:
        result = database.FETCHERS[collection]()
        if result.error:
            flash(f"Kon {collection} niet laden: {result.error}", error=True)
            continue
        store["state"] = reduce(store["state"], Replace(collection, result.data))


def get_store():
    if "store" not in st.session_state:
        store = {"state": AppState()}
        # Only the store keeps its callbacks alive, so an abandoned session
        # stops receiving updates once its state is garbage collected.
        store["callbacks"] = [_replacer(store, collection) for collection in COLLECTIONS]
        store["unsubscribe"] = [
            database.subscribe(collection, callback, weak=True)
            for collection, callback in zip(COLLECTIONS, store["callbacks"])
        ]
        refresh(store)
        st.session_state["store"] = store
    return st.session_state["store"]


def drop_store():
    store = st.session_state.pop("store", None)
    if store:
        for unsubscribe in store["unsubscribe"]:
            unsubscribe()


def current_state():
    return get_store()["state"]


# -----------------------------
# Login
# -----------------------------
def finish_login(result):
    if result.error:
        st.error(result.error)
        return
    st.session_state["auth_user"] = result.data
    flash(f"Welkom, {result.data.name}")
    st.rerun()


def show_login():
    st.header("Inloggen")
    tab_password, tab_badge = st.tabs(["Email en wachtwoord", "Badge"])
    with tab_password:
        with st.form("login_form"):
            email = st.text_input("Email")
            password = st.text_input("Wachtwoord", type="password")
            submitted = st.form_submit_button("Inloggen")
        if submitted:
            finish_login(sign_in(email, password))
    with tab_badge:
        with st.form("badge_login_form"):
            badge_id = st.text_input("Badge ID", type="password", help="Houd je badge tegen de lezer")
            submitted = st.form_submit_button("Inloggen met badge")
        if submitted:
            finish_login(sign_in_with_badge(badge_id))


def logout():
    sign_out()
    drop_store()
    for key in list(st.session_state.keys()):
        del st.session_state[key]
    st.rerun()


# -----------------------------
# Registreren
# -----------------------------
def handle_scan():
    raw = st.session_state.get("scan_code", "")
    if not raw.strip():
        return
    cleaned = clean_code(
        raw,
        char_map=settings.get("scanner_char_map"),
        patterns=scanner_patterns(settings),
    )
    product = resolve_product(raw, current_state().products, cleaned=cleaned)
    if product is None:
        flash(no_match_message(cleaned, raw), error=True)
    else:
        if product.category_id:
            st.session_state["reg_category"] = product.category_id
        st.session_state["reg_search"] = ""
        st.session_state["reg_product"] = product.name
        flash(f"Product gevonden: {product.name}")
    st.session_state["scan_code"] = ""


def show_register(auth_user):
    state = current_state()
    st.header("Product registreren")
    if st.session_state.pop("reg_clear", False):
        st.session_state["reg_product"] = ""

    st.text_input(
        "Scan QR code",
        key="scan_code",
        on_change=handle_scan,
        placeholder="Scan een QR code of kies hieronder handmatig",
    )

    category_options = [ALL] + [category.id for category in state.categories]
    if st.session_state.get("reg_category") not in category_options:
        st.session_state["reg_category"] = ALL

    col1, col2 = st.columns(2)
    with col1:
        category_id = st.selectbox(
            "Categorie",
            category_options,
            key="reg_category",
            format_func=lambda value: "Alle categorieën" if value == ALL else category_name(state, value),
        )
    with col2:
        query = st.text_input("Zoek product", key="reg_search")

    product_names = [""] + [product.name for product in filter_products(state.products, category_id, query)]
    if st.session_state.get("reg_product") not in product_names:
        st.session_state["reg_product"] = ""

    user_names = [user.name for user in state.users]
    user_index = user_names.index(auth_user.name) if auth_user.name in user_names else 0

    with st.form("registration_form"):
        product_name = st.selectbox("Product", product_names, key="reg_product")
        user_name = st.selectbox("Gebruiker", user_names, index=user_index) if user_names else ""
        location = st.selectbox("Locatie", [""] + list(state.locations))
        purpose = st.selectbox("Doel", [""] + list(state.purposes))
        submitted = st.form_submit_button("Registreren")

    if submitted:
        product = find_product(state, product_name)
        try:
            row = build_registration(
                user_name,
                product_name,
                location,
                purpose,
                qr_code=product.qrcode if product else None,
            )
        except RegistrationError as exc:
            st.error(str(exc))
            return
        if report(database.save_registration(row), "Registratie opgeslagen"):
            st.session_state["reg_clear"] = True
        st.rerun()


# -----------------------------
# Geschiedenis
# -----------------------------
def show_history():
    state = current_state()
    st.header("Geschiedenis")

    col1, col2, col3 = st.columns(3)
    with col1:
        query = st.text_input("Zoeken")
    with col2:
        user = st.selectbox(
            "Gebruiker",
            [ALL] + [user.name for user in state.users],
            format_func=lambda value: "Alle gebruikers" if value == ALL else value,
        )
    with col3:
        location = st.selectbox(
            "Locatie",
            [ALL] + list(state.locations),
            format_func=lambda value: "Alle locaties" if value == ALL else value,
        )

    date_from = date_to = None
    if st.checkbox("Filter op datum"):
        col_from, col_to = st.columns(2)
        with col_from:
            date_from = st.date_input("Van")
        with col_to:
            date_to = st.date_input("Tot en met")

    col_sort, col_order = st.columns(2)
    with col_sort:
        sort_by = st.selectbox("Sorteren op", SORT_FIELDS, format_func=SORT_LABELS.get)
    with col_order:
        order = st.radio(
            "Volgorde",
            ["newest", "oldest"],
            horizontal=True,
            format_func=lambda value: "Nieuwste eerst" if value == "newest" else "Oudste eerst",
        )

    registrations = sort_registrations(
        filter_registrations(state.registrations, query, user, location, date_from, date_to),
        sort_by,
        order,
    )
    st.caption(f"{len(registrations)} van {len(state.registrations)} registraties")
    if not registrations:
        st.info("Geen registraties gevonden.")
        return
    st.dataframe(
        [
            {
                "Datum": reg.date,
                "Tijd": reg.time,
                "Gebruiker": reg.user,
                "Product": reg.product,
                "Locatie": reg.location,
                "Doel": reg.purpose,
                "QR Code": reg.qrcode or "",
            }
            for reg in registrations
        ],
        hide_index=True,
    )


# -----------------------------
# Producten
# -----------------------------
def existing_codes(state):
    return [product.qrcode for product in state.products if product.qrcode]


def update_product_fields(product, **changes):
    fields = {
        "name": product.name,
        "qrcode": product.qrcode,
        "category_id": product.category_id,
        "attachment_url": product.attachment_url,
        "attachment_name": product.attachment_name,
    }
    fields.update(changes)
    return database.update_product(product.id, **fields)


def category_select(label, state, key, current=None):
    options = [""] + [category.id for category in state.categories]
    index = options.index(current) if current in options else 0
    return st.selectbox(
        label,
        options,
        index=index,
        key=key,
        format_func=lambda value: "Geen categorie" if not value else category_name(state, value),
    )


def show_product_editor(product, state, base_url):
    with st.form(f"edit_product_{product.id}"):
        name = st.text_input("Naam", value=product.name)
        qrcode_value = st.text_input("QR code", value=product.qrcode or "")
        category_id = category_select("Categorie", state, f"edit_category_{product.id}", product.category_id)
        saved = st.form_submit_button("Opslaan")
    if saved:
        name = clean_text(name)
        if not name:
            st.error("Productnaam is verplicht")
        elif name != product.name and find_product(state, name):
            st.error("Er bestaat al een product met deze naam")
        else:
            result = update_product_fields(
                product,
                name=name,
                qrcode=clean_text(qrcode_value),
                category_id=category_id or None,
            )
            report(result, "Product bijgewerkt")
            st.rerun()

    col1, col2, col3 = st.columns(3)
    with col1:
        if not product.qrcode:
            if st.button("QR code genereren", key=f"gen_{product.id}"):
                code = generate_product_code(
                    product.name,
                    existing_codes(state),
                    stopwords=settings.get("code_stopwords") or (),
                )
                report(update_product_fields(product, qrcode=code), f"QR code {code} aangemaakt")
                st.rerun()
        else:
            st.download_button(
                "QR code downloaden",
                data=qr_png_bytes(product.qrcode, label=product.name),
                file_name=f"{storage.safe_filename(product.name)}.png",
                mime="image/png",
                key=f"qr_{product.id}",
            )
            st.markdown(f"[QR code printen]({base_url}/print/{product.id})")
    with col2:
        if product.attachment_url:
            st.markdown(f"Bijlage: [{product.attachment_name or 'bijlage'}]({base_url}{product.attachment_url})")
            if st.button("Bijlage verwijderen", key=f"rm_att_{product.id}"):
                deleted = storage.delete_attachment(product.attachment_url)
                if deleted.error:
                    flash(deleted.error, error=True)
                else:
                    report(
                        update_product_fields(product, attachment_url=None, attachment_name=None),
                        "Bijlage verwijderd",
                    )
                st.rerun()
        uploaded = st.file_uploader("Bijlage uploaden", key=f"att_{product.id}")
        if uploaded is not None and st.button("Uploaden", key=f"up_att_{product.id}"):
            upload_product_attachment(product, uploaded)
    with col3:
        if st.button("Verwijderen", key=f"del_{product.id}", type="primary"):
            if product.attachment_url:
                storage.delete_attachment(product.attachment_url)
            report(database.delete_product(product.id), f"Product {product.name} verwijderd")
            st.rerun()


def upload_product_attachment(product, uploaded):
    result = storage.upload_attachment(product.id, uploaded.name, uploaded.getvalue())
    if result.error:
        flash(result.error, error=True)
        st.rerun()
    if product.attachment_url:
        storage.delete_attachment(product.attachment_url)
    report(
        update_product_fields(product, attachment_url=result.data, attachment_name=uploaded.name),
        "Bijlage opgeslagen",
    )
    st.rerun()


def show_products(base_url):
    state = current_state()
    st.header("Producten")

    with st.expander("Nieuw product", expanded=not state.products):
        with st.form("new_product_form", clear_on_submit=True):
            name = st.text_input("Productnaam")
            category_id = category_select("Categorie", state, "new_product_category")
            qrcode_value = st.text_input("QR code (optioneel)")
            generate = st.checkbox("QR code automatisch genereren", value=True)
            submitted = st.form_submit_button("Toevoegen")
        if submitted:
            name = clean_text(name)
            qrcode_value = clean_text(qrcode_value)
            if not name:
                st.error("Productnaam is verplicht")
            elif find_product(state, name):
                st.error("Er bestaat al een product met deze naam")
            else:
                if not qrcode_value and generate:
                    qrcode_value = generate_product_code(
                        name,
                        existing_codes(state),
                        stopwords=settings.get("code_stopwords") or (),
                    )
                result = database.save_product(name, qrcode=qrcode_value, category_id=category_id or None)
                report(result, f"Product {name} toegevoegd")
                st.rerun()

    with st.expander("Importeren en exporteren"):
        st.caption("CSV formaat: kolom A: Productnaam, kolom B: Categorie")
        uploaded = st.file_uploader("CSV bestand", type=["csv"], key="product_import")
        if uploaded is not None and st.button("Producten importeren"):
            status = st.empty()
            try:
                outcome = import_products(
                    decode_upload(uploaded.getvalue()),
                    state.products,
                    state.categories,
                    progress=status.info,
                )
            except Exception:
                logger.exception("Product import failed")
                flash(UNEXPECTED_ERROR_TEXT, error=True)
            else:
                flash(outcome.message, error=outcome.is_error)
            st.rerun()

        col1, col2 = st.columns(2)
        with col1:
            st.download_button(
                "Producten exporteren",
                data=products_export_csv(state.products, state.categories),
                file_name=PRODUCTS_EXPORT_FILE,
                mime="text/csv",
            )
        with col2:
            st.download_button(
                "QR codes voor labelprinter",
                data=qr_codes_export_csv(state.products),
                file_name=LABELS_EXPORT_FILE,
                mime="text/csv",
            )
        st.markdown(f"[Alle QR codes printen]({base_url}/print)")

    col_filter, col_search = st.columns(2)
    with col_filter:
        category_filter = st.selectbox(
            "Categorie",
            [ALL] + [category.id for category in state.categories],
            format_func=lambda value: "Alle categorieën" if value == ALL else category_name(state, value),
            key="product_category_filter",
        )
    with col_search:
        query = st.text_input("Zoek product of QR code", key="product_search")

    products = filter_products(state.products, category_filter, query)
    st.caption(f"{len(products)} producten")
    for product in products:
        title = product.name
        if product.qrcode:
            title += f" ({product.qrcode})"
        with st.expander(title):
            category = category_name(state, product.category_id)
            if category:
                st.caption(f"Categorie: {category}")
            show_product_editor(product, state, base_url)


# -----------------------------
# Categorieën
# -----------------------------
def show_categories():
    state = current_state()
    st.header("Categorieën")

    with st.form("new_category_form", clear_on_submit=True):
        name = st.text_input("Nieuwe categorie")
        submitted = st.form_submit_button("Toevoegen")
    if submitted:
        name = clean_text(name)
        if not name:
            st.error("Naam is verplicht")
        elif any(category.name == name for category in state.categories):
            st.error("Deze categorie bestaat al")
        else:
            report(database.save_category(name), f"Categorie {name} toegevoegd")
            st.rerun()

    for category in state.categories:
        in_use = sum(1 for product in state.products if product.category_id == category.id)
        with st.expander(f"{category.name} ({in_use} producten)"):
            with st.form(f"edit_category_{category.id}"):
                new_name = st.text_input("Naam", value=category.name)
                col1, col2 = st.columns(2)
                with col1:
                    saved = st.form_submit_button("Opslaan")
                with col2:
                    deleted = st.form_submit_button("Verwijderen")
            if saved:
                new_name = clean_text(new_name)
                if not new_name:
                    st.error("Naam is verplicht")
                else:
                    report(database.update_category(category.id, new_name), "Categorie bijgewerkt")
                    st.rerun()
            if deleted:
                report(database.delete_category(category.id), f"Categorie {category.name} verwijderd")
                st.rerun()


# -----------------------------
# Gebruikers
# -----------------------------
def show_user_editor(user, state):
    with st.form(f"edit_user_{user.name}"):
        name = st.text_input("Naam", value=user.name)
        role = st.selectbox("Niveau", ROLES, index=ROLES.index(user.role))
        badge_code = st.text_input("Badge code", value=user.badge_code or "")
        col1, col2 = st.columns(2)
        with col1:
            saved = st.form_submit_button("Opslaan")
        with col2:
            deleted = st.form_submit_button("Verwijderen")

    if saved:
        name = clean_text(name)
        badge_code = clean_text(badge_code)
        if not name:
            st.error("Naam is verplicht")
            return
        if name != user.name and any(other.name == name for other in state.users):
            st.error("Er bestaat al een gebruiker met deze naam")
            return
        result = database.update_user(user.name, name, role)
        if not report(result, "Gebruiker bijgewerkt"):
            st.rerun()
        if badge_code != (user.badge_code or ""):
            if badge_code:
                email = user_email(name, settings.get("email_domain", "dematic.com"))
                badge_result = database.save_badge_code(badge_code, email, name)
            else:
                badge_result = database.delete_badge_code(name)
            if badge_result.error:
                flash(f"Gebruiker bijgewerkt maar badge niet: {badge_result.error}", error=True)
        st.rerun()

    if deleted:
        report(database.delete_user(user.name), f"Gebruiker {user.name} verwijderd")
        st.rerun()


def show_users():
    state = current_state()
    st.header("Gebruikers")
    min_length = int(settings.get("min_password_length", 6))

    with st.expander("Nieuwe gebruiker", expanded=not state.users):
        with st.form("new_user_form", clear_on_submit=True):
            name = st.text_input("Naam")
            email = st.text_input("Email")
            password = st.text_input("Wachtwoord", type="password")
            role = st.selectbox("Niveau", ROLES)
            badge_code = st.text_input("Badge code (optioneel)")
            submitted = st.form_submit_button("Aanmaken")
        if submitted:
            name, email, badge_code = clean_text(name), clean_text(email), clean_text(badge_code)
            if not name or not email or not password:
                st.error("Vul naam, email en wachtwoord in")
            elif len(password) < min_length:
                st.error(f"Wachtwoord moet minstens {min_length} tekens lang zijn")
            elif any(user.name == name for user in state.users):
                st.error("Er bestaat al een gebruiker met deze naam")
            else:
                result = create_auth_user(email, password, name, role)
                if report(result, f"Gebruiker {name} aangemaakt") and badge_code:
                    badge_result = database.save_badge_code(badge_code, email, name)
                    if badge_result.error:
                        flash(f"Gebruiker aangemaakt maar badge niet: {badge_result.error}", error=True)
                st.rerun()

    with st.expander("Importeren en exporteren"):
        st.caption("CSV formaat: Naam, Email, Wachtwoord, Niveau, Badge Code")
        uploaded = st.file_uploader("CSV bestand", type=["csv"], key="user_import")
        if uploaded is not None and st.button("Gebruikers importeren"):
            status = st.empty()
            try:
                outcome = import_users(
                    decode_upload(uploaded.getvalue()),
                    state.users,
                    delay=float(settings.get("import_row_delay", 0.5)),
                    min_password_length=min_length,
                    progress=status.info,
                )
            except Exception:
                logger.exception("User import failed")
                flash(UNEXPECTED_ERROR_TEXT, error=True)
            else:
                flash(outcome.message, error=outcome.is_error)
            st.rerun()

        col1, col2 = st.columns(2)
        with col1:
            st.download_button(
                "Gebruikers exporteren",
                data=users_export_csv(state.users, settings.get("email_domain", "dematic.com")),
                file_name=USERS_EXPORT_FILE,
                mime="text/csv",
            )
        with col2:
            st.download_button(
                "Template downloaden",
                data=users_template_csv(),
                file_name=USERS_TEMPLATE_FILE,
                mime="text/csv",
            )

    query = st.text_input("Zoek gebruiker", key="user_search")
    for user in filter_users(state.users, query):
        label = f"{user.name} ({user.role})"
        if user.badge_code:
            label += " · badge"
        with st.expander(label):
            show_user_editor(user, state)


# -----------------------------
# Locaties en doelen
# -----------------------------
def show_name_list(title, key, names, field, save, update, delete):
    """Add, rename and delete page for the plain name collections."""
    registrations = current_state().registrations
    st.header(title)

    with st.form(f"new_{key}_form", clear_on_submit=True):
        name = st.text_input("Naam")
        submitted = st.form_submit_button("Toevoegen")
    if submitted:
        name = clean_text(name)
        if not name:
            st.error("Naam is verplicht")
        elif name in names:
            st.error(f"{name} bestaat al")
        else:
            report(save(name), f"{name} toegevoegd")
            st.rerun()

    for name in names:
        with st.expander(f"{name} ({usage_count(registrations, field, name)} registraties)"):
            with st.form(f"edit_{key}_{name}"):
                new_name = st.text_input("Naam", value=name)
                col1, col2 = st.columns(2)
                with col1:
                    saved = st.form_submit_button("Opslaan")
                with col2:
                    deleted = st.form_submit_button("Verwijderen")
            if saved:
                new_name = clean_text(new_name)
                if not new_name:
                    st.error("Naam is verplicht")
                elif new_name != name and new_name in names:
                    st.error(f"{new_name} bestaat al")
                else:
                    report(update(name, new_name), f"{new_name} bijgewerkt")
                    st.rerun()
            if deleted:
                report(delete(name), f"{name} verwijderd")
                st.rerun()


# -----------------------------
# Statistieken
# -----------------------------
def show_statistics():
    state = current_state()
    st.header("Statistieken")

    col1, col2, col3 = st.columns(3)
    col1.metric("Registraties", len(state.registrations))
    col2.metric("Producten", len(state.products))
    col3.metric("Gebruikers", len(state.users))

    col_users, col_products = st.columns(2)
    with col_users:
        st.subheader("Meest actieve gebruikers")
        rows = top_users(state.registrations)
        if rows:
            st.table([{"Gebruiker": name, "Registraties": count} for name, count in rows])
        else:
            st.caption("Nog geen registraties.")
    with col_products:
        st.subheader("Meest gebruikte producten")
        rows = top_products(state.registrations)
        if rows:
            st.table([{"Product": name, "Registraties": count} for name, count in rows])
        else:
            st.caption("Nog geen registraties.")

    st.subheader("Per locatie")
    st.table(
        [
            {"Locatie": location, "Registraties": usage_count(state.registrations, "location", location)}
            for location in state.locations
        ]
    )


# -----------------------------
# Instellingen
# -----------------------------
def parse_pairs(text):
    """Parse ``wrong -> correct`` lines; lines without an arrow are ignored."""
    pairs = []
    for line in (text or "").splitlines():
        if "->" not in line:
            continue
        wrong, correct = line.split("->", 1)
        if wrong.strip():
            pairs.append((wrong.strip(), correct.strip()))
    return pairs


def show_settings(base_url):
    st.header("Instellingen")
    st.caption("Wijzigingen worden opgeslagen in het instellingenbestand.")

    char_map = settings.get("scanner_char_map") or {}
    char_map_text = "\n".join(f"{wrong} -> {correct}" for wrong, correct in char_map.items())
    patterns_text = "\n".join(f"{wrong} -> {correct}" for wrong, correct in scanner_patterns(settings))

    with st.form("settings_form"):
        st.subheader("Gebruikers")
        email_domain = st.text_input("Email domein voor export", value=settings.get("email_domain", ""))
        min_password_length = st.number_input(
            "Minimale wachtwoordlengte",
            min_value=1,
            max_value=64,
            value=int(settings.get("min_password_length", 6)),
        )
        import_row_delay = st.number_input(
            "Pauze tussen geïmporteerde gebruikers (seconden)",
            min_value=0.0,
            max_value=10.0,
            value=float(settings.get("import_row_delay", 0.5)),
            step=0.1,
        )

        st.subheader("Meldingen")
        message_seconds = st.slider("Succesmelding (seconden)", 1, 10, int(settings.get("message_seconds", 3)))
        error_seconds = st.slider("Foutmelding (seconden)", 1, 15, int(settings.get("error_seconds", 5)))

        st.subheader("QR codes")
        public_base_url = st.text_input(
            "Publieke URL van de QR webapp (optioneel)",
            value=settings.get("public_base_url", ""),
            placeholder="https://qr.example.com",
        )
        flask_port = st.number_input(
            "Flask poort",
            min_value=1,
            max_value=65535,
            value=int(settings.get("flask_port", 5000)),
        )
        code_stopwords = st.text_input(
            "Woorden die niet meetellen voor QR codes",
            value=", ".join(settings.get("code_stopwords") or []),
        )

        st.subheader("Scanner")
        char_map_input = st.text_area("Extra tekenvervangingen (één per regel: fout -> goed)", value=char_map_text)
        patterns_input = st.text_area("Extra patroonvervangingen (één per regel: fout -> goed)", value=patterns_text)

        submitted = st.form_submit_button("Opslaan")

    st.info(f"QR webapp: {base_url}")

    if submitted:
        updated = {
            **settings,
            "email_domain": clean_text(email_domain),
            "min_password_length": int(min_password_length),
            "import_row_delay": float(import_row_delay),
            "message_seconds": int(message_seconds),
            "error_seconds": int(error_seconds),
            "public_base_url": clean_text(public_base_url).rstrip("/"),
            "flask_port": int(flask_port),
            "code_stopwords": [word.strip() for word in code_stopwords.split(",") if word.strip()],
            "scanner_char_map": {wrong: correct for wrong, correct in parse_pairs(char_map_input)},
            "scanner_patterns": [
                {"wrong": wrong, "correct": correct} for wrong, correct in parse_pairs(patterns_input)
            ],
        }
        try:
            save_settings(updated)
        except OSError:
            logger.exception("Could not save settings")
            flash("Instellingen konden niet worden opgeslagen", error=True)
        else:
            flash("Instellingen opgeslagen")
        st.rerun()


database.init_db()
settings = load_settings()
WEB_BASE_URL = compute_web_base_url(settings)

st.set_page_config(
    page_title="Product Registratie",
    page_icon="📦",
    layout="wide",
    initial_sidebar_state="expanded",
)
st.title("📦 Product Registratie")
show_flash()

auth_user = st.session_state.get("auth_user")
if auth_user is None:
    show_login()
    st.stop()

get_store()

st.sidebar.write(f"**{auth_user.name}**")
st.sidebar.caption("Beheerder" if auth_user.role == "admin" else "Gebruiker")
pages = USER_PAGES + ADMIN_PAGES if auth_user.role == "admin" else USER_PAGES
menu = st.sidebar.selectbox("Menu", pages)
if st.sidebar.button("Vernieuwen"):
    refresh(get_store())
    st.rerun()
if st.sidebar.button("Uitloggen"):
    logout()

if menu == "Registreren":
    show_register(auth_user)

elif menu == "Geschiedenis":
    show_history()

elif menu == "Producten":
    show_products(WEB_BASE_URL)

elif menu == "Categorieën":
    show_categories()

elif menu == "Gebruikers":
    show_users()

elif menu == "Locaties":
    show_name_list(
        "Locaties",
        "location",
        current_state().locations,
        "location",
        database.save_location,
        database.update_location,
        database.delete_location,
    )

elif menu == "Doelen":
    show_name_list(
        "Doelen",
        "purpose",
        current_state().purposes,
        "purpose",
        database.save_purpose,
        database.update_purpose,
        database.delete_purpose,
    )

elif menu == "Statistieken":
    show_statistics()

elif menu == "Instellingen":
    show_settings(WEB_BASE_URL)
