"""Tests for the capture heuristics and the extraction driver.

Pages are built by hand, so no browser stamps are present and every style
or size heuristic reads inline ``style`` / ``width`` / ``height`` instead.
"""

from unittest.mock import patch

from app.models.capture import Heading
from app.services.branding import css_color_to_hex, extract_colors, extract_fonts, parse_font_family
from app.services.contacts import (
    extract_address,
    extract_doctor_names,
    extract_emails,
    extract_phones,
    normalise_phone,
)
from app.services.extractor import (
    detect_booking,
    extract,
    extract_business_name,
    extract_content,
)
from app.services.imagery import collect_images, extract_hero_image, extract_logo
from app.services.page import PageSnapshot, dedupe

_URL = "https://acme.example.ae/"

_CLINIC_HTML = """
<!DOCTYPE html>
<html>
<head>
  <title>Acme Dental | Family Dentist in Dubai</title>
  <meta name="description" content="Gentle family dentistry in Jumeirah.">
  <meta property="og:site_name" content="Acme Dental Clinic">
  <meta property="og:image" content="https://cdn.example.ae/og.jpg">
  <script type="application/ld+json">
  {"@context": "https://schema.org", "@type": "Dentist", "name": "Acme Dental LLC",
   "address": {"@type": "PostalAddress", "streetAddress": "1 Main St", "addressLocality": "Dubai"},
   "member": [{"@type": "Person", "name": "Dr. Omar Khalid"}]}
  </script>
</head>
<body style="font-family: 'Poppins', Arial, sans-serif; color: #333333">
  <header style="background-color: rgb(0, 128, 128)">
    <img src="/img/logo.png" alt="Acme logo" width="180" height="60">
    <nav>
      <a href="/about" style="color: #008080">About</a>
      <a href="https://calendly.com/acme/checkup">Book</a>
      <p>Navigation text that is long enough to count as a paragraph.</p>
    </nav>
  </header>
  <main>
    <section class="hero">
      <h1 style="font-family: Playfair Display, serif">Acme Dental</h1>
      <img src="/img/icon-tooth.png" width="48" height="48">
      <img src="/img/clinic.jpg" width="1200" height="600" alt="Our clinic">
      <button style="background-color: #ff6600">Call us</button>
    </section>
    <section class="about">
      <h2>About us</h2>
      <p>Dr. Sara Ahmed is our lead dentist with fifteen years of experience.</p>
      <p>Short.</p>
      <h3>Teeth Whitening</h3>
      <h3>Dental Implants</h3>
    </section>
    <section class="contact">
      <h2>Contact</h2>
      <h2>Contact</h2>
      <p>Call <a href="tel:+971-4-123-4567">+971 4 123 4567</a> or 050 123 4567 today.</p>
      <p>Email <a href="mailto:Info@Acme.example.ae">info@acme.example.ae</a>, not someone@example.com
         or logo@2x.png.</p>
      <a href="https://wa.me/971501234567">WhatsApp</a>
      <a href="https://instagram.com/acmedental">Instagram</a>
      <iframe src="https://www.google.com/maps/embed?pb=abc"></iframe>
    </section>
  </main>
  <footer><p>Copyright Acme Dental 2026. All rights reserved worldwide.</p></footer>
</body>
</html>
"""


def _snapshot(html: str) -> PageSnapshot:
    return PageSnapshot(html, _URL)


class TestExtractCapture:
    def setup_method(self):
        self.capture = extract(_CLINIC_HTML, _URL)

    def test_meta_and_headings(self):
        assert self.capture.page_url == _URL
        assert self.capture.page_title == "Acme Dental | Family Dentist in Dubai"
        assert self.capture.meta_description == "Gentle family dentistry in Jumeirah."
        assert self.capture.h1_text == "Acme Dental"
        assert self.capture.h2_texts == ["About us", "Contact"]
        assert Heading(tag="h1", text="Acme Dental") in self.capture.headings

    def test_business_name_prefers_og_site_name(self):
        assert self.capture.business_name == "Acme Dental Clinic"

    def test_images(self):
        assert self.capture.logo_url == "https://acme.example.ae/img/logo.png"
        assert self.capture.hero_image_url == "https://acme.example.ae/img/clinic.jpg"
        assert "https://acme.example.ae/img/icon-tooth.png" in self.capture.images

    def test_brand(self):
        assert self.capture.color_palette[0] == "#008080"
        assert "#ff6600" in self.capture.color_palette
        assert "#333333" not in self.capture.color_palette
        assert self.capture.font_families == ["Poppins", "Arial", "Playfair Display"]

    def test_flags(self):
        assert self.capture.has_booking is True
        assert self.capture.has_whatsapp is True
        assert self.capture.has_instagram is True

    def test_contacts(self):
        assert self.capture.contact_phones == ["+97141234567", "+971501234567"]
        assert self.capture.contact_emails == ["info@acme.example.ae"]
        assert self.capture.doctor_names == ["Dr. Omar Khalid", "Dr. Sara Ahmed"]
        assert self.capture.address == "1 Main St, Dubai"
        assert self.capture.google_maps_url == "https://www.google.com/maps/embed?pb=abc"

    def test_content_skips_chrome_and_short_text(self):
        content = self.capture.page_content
        assert "Dr. Sara Ahmed is our lead dentist" in content
        assert "Teeth Whitening" in content
        assert "Short." not in content
        assert "Navigation text" not in content
        assert "Copyright" not in content

    def test_failing_heuristic_gives_empty_value(self):
        def broken(snapshot):
            raise RuntimeError("boom")

        with patch("app.services.extractor.extract_phones", new=broken):
            capture = extract(_CLINIC_HTML, _URL)
        assert capture.contact_phones == []
        assert capture.contact_emails == ["info@acme.example.ae"]

    def test_empty_page(self):
        capture = extract("", _URL)
        assert capture.page_title == ""
        assert capture.images == []
        assert capture.business_name is None
        assert capture.page_content is None


class TestBusinessName:
    def test_structured_data(self):
        html = (
            '<script type="application/ld+json">{"@type": "MedicalClinic", "name": "Sunrise Clinic"}</script>'
            "<h1>Welcome</h1>"
        )
        assert extract_business_name(_snapshot(html)) == "Sunrise Clinic"

    def test_h1(self):
        assert extract_business_name(_snapshot("<title>Home</title><h1>Sunrise Clinic</h1>")) == "Sunrise Clinic"

    def test_title_when_h1_too_long(self):
        html = "<title>Sunrise Clinic | Dubai</title><h1>" + "x" * 80 + "</h1>"
        assert extract_business_name(_snapshot(html)) == "Sunrise Clinic"

    def test_title_dash_separator(self):
        assert extract_business_name(_snapshot("<title>Sunrise Clinic - Dubai</title>")) == "Sunrise Clinic"

    def test_nothing(self):
        assert extract_business_name(_snapshot("<p>hello</p>")) is None


class TestPhones:
    def test_normalise(self):
        assert normalise_phone("+971 (4) 123-4567") == "+97141234567"
        assert normalise_phone("00971 50 123 4567") == "+971501234567"
        assert normalise_phone("800 1234") == "8001234"
        assert normalise_phone("04 123 4567") == "+97141234567"
        assert normalise_phone("050-123-4567") == "+971501234567"
        assert normalise_phone("+44 20 7946 0958") is None
        assert normalise_phone("12345") is None

    def test_tel_links_first_and_capped(self):
        links = "".join(f'<a href="tel:04123456{i}">call</a>' for i in range(7))
        phones = extract_phones(_snapshot(f"<body>{links}<p>050 999 8888</p></body>"))
        assert phones == [f"+9714123456{i}" for i in range(5)]

    def test_local_and_international_forms_collapse(self):
        html = '<a href="tel:+97141234567">call</a><p>Landline 04 123 4567, mobile 00971 50 123 4567</p>'
        assert extract_phones(_snapshot(html)) == ["+97141234567", "+971501234567"]

    def test_foreign_numbers_ignored(self):
        assert extract_phones(_snapshot("<p>Call +1 212 555 0199</p>")) == []


class TestEmails:
    def test_filters_and_lowercases(self):
        html = (
            '<a href="mailto:Hello@Clinic.ae?subject=Hi">mail</a>'
            "<p>abc@sentry.io x@wixpress.com sprite@2x.png hello@clinic.ae</p>"
        )
        assert extract_emails(_snapshot(html)) == ["hello@clinic.ae"]

    def test_capped(self):
        text = " ".join(f"user{i}@clinic.ae" for i in range(8))
        assert len(extract_emails(_snapshot(f"<p>{text}</p>"))) == 5


class TestDoctorNames:
    def test_regex_adds_title(self):
        names = extract_doctor_names(_snapshot("<p>Meet Dr Layla Hassan and Dr. Ko today</p>"))
        assert names == ["Dr. Layla Hassan", "Dr. Ko"]

    def test_physician_node(self):
        html = '<script type="application/ld+json">{"@type": "Physician", "name": "Dr. Ahmed Ali"}</script>'
        assert extract_doctor_names(_snapshot(html)) == ["Dr. Ahmed Ali"]


class TestAddress:
    def test_text_line_with_place_name(self):
        html = "<body><p>Visit us</p><p>Office 12, Al Wasl Road, Jumeirah 1, Dubai</p></body>"
        assert extract_address(_snapshot(html)) == "Office 12, Al Wasl Road, Jumeirah 1, Dubai"

    def test_map_embed(self):
        html = '<iframe src="https://maps.google.com/maps?q=Marina%20Walk%2C%20Dubai&output=embed"></iframe>'
        assert extract_address(_snapshot(html)) == "Marina Walk, Dubai"

    def test_none(self):
        assert extract_address(_snapshot("<p>No location here at all, sorry.</p>")) is None


class TestImagery:
    def test_hero_from_leading_section_without_hero_class(self):
        html = (
            "<body><section><img src='/a.jpg' width='800' height='400'></section>"
            "<section><img src='/b.jpg' width='1600' height='900'></section></body>"
        )
        assert extract_hero_image(_snapshot(html)) == "https://acme.example.ae/a.jpg"

    def test_hero_from_largest_image(self):
        html = (
            "<body><div><p>a</p></div><div><p>b</p></div><div><p>c</p></div>"
            "<div><img src='/small.jpg' width='300' height='300'>"
            "<img src='/big.jpg' width='350' height='350'></div></body>"
        )
        assert extract_hero_image(_snapshot(html)) == "https://acme.example.ae/big.jpg"

    def test_unmeasured_image_in_leading_section(self):
        html = "<body><section><p>Intro</p></section><section><img src='/team.jpg'></section></body>"
        assert extract_hero_image(_snapshot(html)) == "https://acme.example.ae/team.jpg"

    def test_unmeasured_images_fall_back_to_document_order(self):
        html = (
            "<body><div><p>a</p></div><div><p>b</p></div><div><p>c</p></div>"
            "<div><img src='/first.jpg'><img src='/second.jpg'></div></body>"
        )
        assert extract_hero_image(_snapshot(html)) == "https://acme.example.ae/first.jpg"

    def test_hero_from_background_image(self):
        html = "<div class='banner' style=\"background-image: url('/bg.jpg')\"></div>"
        assert extract_hero_image(_snapshot(html)) == "https://acme.example.ae/bg.jpg"

    def test_hero_falls_back_to_og_image(self):
        html = (
            '<head><meta property="og:image" content="/og.jpg"></head>'
            "<body><img src='/logo.svg'><img src='data:image/png;base64,AAAA'></body>"
        )
        assert extract_hero_image(_snapshot(html)) == "https://acme.example.ae/og.jpg"

    def test_lazy_src(self):
        html = "<img data-src='/lazy.jpg'>"
        assert collect_images(_snapshot(html)) == ["https://acme.example.ae/lazy.jpg"]

    def test_logo_anywhere(self):
        html = "<main><img src='/brand-logo.png'></main>"
        assert extract_logo(_snapshot(html)) == "https://acme.example.ae/brand-logo.png"

    def test_browser_stamped_sizes(self):
        html = "<section class='hero'><img src='/x.jpg' data-ps-nw='1920' data-ps-nh='1080'></section>"
        assert extract_hero_image(_snapshot(html)) == "https://acme.example.ae/x.jpg"


class TestBranding:
    def test_css_color_to_hex(self):
        assert css_color_to_hex("rgb(0, 128, 128)") == "#008080"
        assert css_color_to_hex("rgba(255, 102, 0, 0.5)") == "#ff6600"
        assert css_color_to_hex("rgba(0, 0, 0, 0)") is None
        assert css_color_to_hex("#ABC") == "#aabbcc"
        assert css_color_to_hex("transparent") is None

    def test_near_greys_are_kept(self):
        html = '<header style="background-color: #fefefe"></header><h1 style="color:#ffffff">x</h1>'
        assert extract_colors(_snapshot(html)) == ["#fefefe"]

    def test_stamped_colours(self):
        html = '<button data-ps-bg="rgb(200, 16, 46)" data-ps-color="rgb(255, 255, 255)">Go</button>'
        assert extract_colors(_snapshot(html)) == ["#c8102e"]

    def test_inline_declarations_ignore_priority(self):
        html = '<a style="color: #008080 !important; font-weight: bold">Book</a>'
        assert extract_colors(_snapshot(html)) == ["#008080"]

    def test_parse_font_family(self):
        assert parse_font_family('"Open Sans", -apple-system, sans-serif') == ["Open Sans"]

    def test_fonts_capped(self):
        html = '<body style="font-family: A, B, C, D, E, F">x</body>'
        assert extract_fonts(_snapshot(html)) == ["A", "B", "C", "D"]


class TestHelpers:
    def test_booking_by_text(self):
        assert detect_booking(_snapshot("<p>Book an appointment online today</p>"))

    def test_facebook_is_not_booking(self):
        assert not detect_booking(_snapshot('<a href="https://facebook.com/acme">fb</a>'))

    def test_facebook_icon_is_not_booking(self):
        html = '<footer><a href="https://facebook.com/acme"><i class="fab fa-facebook-f"></i></a></footer>'
        assert not detect_booking(_snapshot(html))

    def test_booking_by_class_token(self):
        assert detect_booking(_snapshot('<div class="widget book-now-widget">x</div>'))
        assert detect_booking(_snapshot('<form action="/appointments/new"></form>'))

    def test_theme_classes_on_body_are_not_chrome(self):
        html = (
            '<body class="home has-header-image ast-header-break-point has-navbar">'
            "<main><p>We are a family dental clinic offering gentle care for all ages.</p></main>"
            "</body>"
        )
        assert extract_content(_snapshot(html)) == (
            "We are a family dental clinic offering gentle care for all ages."
        )

    def test_chrome_inside_main_is_still_skipped(self):
        html = (
            '<body><main><div class="site-menu"><p>Home About Services Contact Careers Blog</p></div>'
            "<p>We are a family dental clinic offering gentle care for all ages.</p></main></body>"
        )
        assert "Careers" not in extract_content(_snapshot(html))

    def test_content_cap(self):
        paragraphs = "".join(f"<p>{i} {'word ' * 80}</p>" for i in range(20))
        content = extract_content(_snapshot(f"<main>{paragraphs}</main>"))
        assert len(content) == 2000

    def test_dedupe(self):
        assert dedupe([3, 1, 3, 2, 1]) == [3, 1, 2]
        assert dedupe([3, 1, 3, 2, 1], limit=2) == [3, 1]
