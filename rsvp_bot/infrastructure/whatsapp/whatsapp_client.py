"""
WhatsApp Client - Selenium-Based WhatsApp Web Automation
=========================================================

Drives a real WhatsApp Web session in Chrome. The browser profile lives in
the data directory so the QR pairing survives restarts.
"""

import logging
import random
import time
from pathlib import Path
from typing import List, Optional, Tuple

from selenium import webdriver
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.chrome.service import Service as ChromeService
from selenium.webdriver.support.ui import WebDriverWait
from selenium.webdriver.support import expected_conditions as EC
from selenium.common.exceptions import (
    NoSuchElementException,
    TimeoutException,
    StaleElementReferenceException,
)

try:
    from webdriver_manager.chrome import ChromeDriverManager
except ImportError:
    ChromeDriverManager = None

from ..config import get_settings

logger = logging.getLogger(__name__)

WHATSAPP_WEB_URL = "https://web.whatsapp.com/"


class WhatsAppClientError(Exception):
    """Base exception for WhatsApp client errors."""
    pass


class WhatsAppBlockedError(WhatsAppClientError):
    """Raised when WhatsApp shows blocking/warning indicators."""
    pass


class WhatsAppClient:
    """
    Selenium-based WhatsApp Web client.

    Messages are identified by their `data-id` attribute, which WhatsApp Web
    prefixes with `true_` for incoming and `false_` for outgoing messages.
    """

    SELECTORS = {
        "search_box": 'div[contenteditable="true"][data-tab="3"]',
        "message_input": 'div[contenteditable="true"][data-tab="10"]',
        "message_input_alt": 'footer div[contenteditable="true"]',
        "incoming_messages": 'div[data-id^="true_"]',
        "outgoing_messages": 'div[data-id^="false_"]',
        "popup": 'div[data-animate-modal-popup="true"]',
    }

    BLOCK_INDICATORS = [
        "temporarily banned",
        "account is temporarily",
        "verify your phone",
        "unusual activity",
    ]

    INVALID_NUMBER_INDICATORS = [
        "phone number shared via url is invalid",
        "is not on whatsapp",
    ]

    def __init__(self, headless: bool = False, profile_dir: Optional[Path] = None):
        settings = get_settings()
        self._settings = settings.whatsapp
        self._profile_dir = Path(profile_dir or settings.data_dir / "whatsapp_profile")

        self.driver = self._create_driver(headless)
        self._navigate_to_whatsapp()

    def _create_driver(self, headless: bool) -> webdriver.Chrome:
        """Create and configure Chrome WebDriver."""
        options = webdriver.ChromeOptions()

        if headless:
            options.add_argument("--headless=new")
            logger.warning("Running headless - QR code scanning won't work!")
        else:
            options.add_argument("--start-maximized")

        options.add_argument("--disable-gpu")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")

        self._profile_dir.mkdir(parents=True, exist_ok=True)
        options.add_argument(f"--user-data-dir={self._profile_dir.resolve()}")
        logger.info(f"Using Chrome profile at: {self._profile_dir}")

        if ChromeDriverManager:
            service = ChromeService(ChromeDriverManager().install())
            return webdriver.Chrome(service=service, options=options)
        return webdriver.Chrome(options=options)

    def _navigate_to_whatsapp(self) -> None:
        self.driver.get(WHATSAPP_WEB_URL)
        logger.info("Opened WhatsApp Web - please scan QR code if needed")

    def _random_delay(self, min_s: float = 0.5, max_s: float = 2.0) -> None:
        """Add human-like random delay."""
        time.sleep(random.uniform(min_s, max_s))

    def _check_for_blocks(self) -> bool:
        """Check page for blocking/warning indicators."""
        page_text = self.driver.page_source.lower()
        for indicator in self.BLOCK_INDICATORS:
            if indicator in page_text:
                logger.error(f"Block indicator detected: {indicator}")
                return True
        return False

    def wait_for_login(self, timeout: Optional[int] = None) -> bool:
        """Wait for user to scan QR code and WhatsApp to load."""
        timeout = timeout or self._settings.login_timeout_seconds
        logger.info(f"Waiting up to {timeout}s for QR code scan...")

        try:
            WebDriverWait(self.driver, timeout).until(
                EC.presence_of_element_located(
                    (By.CSS_SELECTOR, self.SELECTORS["search_box"])
                )
            )
            logger.info("WhatsApp Web loaded successfully")
            return True
        except TimeoutException:
            logger.error("Timeout waiting for WhatsApp login")
            return False

    def check_number(self, phone: str, timeout: int = 20) -> bool:
        """
        Open a chat through the click-to-chat URL and report whether the
        number is on WhatsApp. Leaves the chat open when it is.
        """
        if self._check_for_blocks():
            raise WhatsAppBlockedError("WhatsApp blocking detected")

        self.driver.get(f"{WHATSAPP_WEB_URL}send?phone={phone}")

        def _settled(driver):
            if self._find_message_input():
                return "chat"
            for popup in driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["popup"]):
                text = (popup.text or "").lower()
                if any(ind in text for ind in self.INVALID_NUMBER_INDICATORS):
                    return "invalid"
            return False

        try:
            outcome = WebDriverWait(self.driver, timeout).until(_settled)
        except TimeoutException:
            logger.warning(f"Timed out checking whether {phone} is on WhatsApp")
            return False

        logger.info(f"Number check for {phone}: {outcome}")
        return outcome == "chat"

    def open_chat(self, phone: str) -> bool:
        """Open chat with a phone number through the search box."""
        if self._check_for_blocks():
            raise WhatsAppBlockedError("WhatsApp blocking detected")

        search_box = self._find_search_box()
        if not search_box:
            logger.warning("Could not find the chat search box")
            return False

        search_box.click()
        self._random_delay(0.3, 0.7)
        search_box.send_keys(Keys.CONTROL + "a")
        search_box.send_keys(Keys.BACKSPACE)
        self._random_delay(0.3, 0.5)

        for char in phone:
            search_box.send_keys(char)
            self._random_delay(0.05, 0.15)

        time.sleep(2)
        search_box.send_keys(Keys.ENTER)
        time.sleep(3)

        if self._find_message_input():
            logger.info(f"Chat opened successfully: {phone}")
            return True
        logger.warning(f"Could not verify chat opened for: {phone}")
        return False

    def _find_search_box(self):
        try:
            return self.driver.find_element(By.CSS_SELECTOR, self.SELECTORS["search_box"])
        except NoSuchElementException:
            elements = self.driver.find_elements(By.CSS_SELECTOR, 'div[contenteditable="true"]')
            return elements[0] if elements else None

    def _find_message_input(self):
        """Find the message input box with fallback selectors."""
        for selector in (self.SELECTORS["message_input"], self.SELECTORS["message_input_alt"]):
            try:
                return self.driver.find_element(By.CSS_SELECTOR, selector)
            except NoSuchElementException:
                continue
        return None

    def send_message(self, text: str) -> bool:
        """Type and send a message in the current chat."""
        self._random_delay(0.5, 1.0)

        input_box = self._find_message_input()
        if not input_box:
            logger.error("Could not find message input box")
            return False

        input_box.click()
        self._random_delay(0.3, 0.6)

        # Newlines are typed as Shift+Enter so a multi-line message stays one message
        lines = text.split("\n")
        for i, line in enumerate(lines):
            chunk_size = 50
            for start in range(0, len(line), chunk_size):
                input_box.send_keys(line[start:start + chunk_size])
                self._random_delay(0.1, 0.3)
            if i < len(lines) - 1:
                input_box.send_keys(Keys.SHIFT + Keys.ENTER)

        self._random_delay(0.3, 0.5)
        input_box.send_keys(Keys.ENTER)

        logger.info(f"Sent message: {text[:50]}...")
        return True

    def _message_elements(self, incoming: bool) -> List[Tuple[object, str]]:
        """Message elements in the open chat as (element, data-id) pairs."""
        selector = self.SELECTORS["incoming_messages" if incoming else "outgoing_messages"]
        out = []
        for el in self.driver.find_elements(By.CSS_SELECTOR, selector):
            try:
                out.append((el, el.get_attribute("data-id") or ""))
            except StaleElementReferenceException:
                continue
        return out

    def _extract_text_from_message(self, element) -> Optional[str]:
        text_selectors = [
            'span.selectable-text.copyable-text > span',
            'span.selectable-text.copyable-text',
            'span.selectable-text',
            'span[dir="ltr"]',
        ]

        for selector in text_selectors:
            try:
                for text_el in element.find_elements(By.CSS_SELECTOR, selector):
                    text = text_el.text.strip()
                    if text:
                        return text
            except StaleElementReferenceException:
                continue

        return element.text.strip() if element.text else None

    def latest_outgoing_id(self) -> str:
        messages = self._message_elements(incoming=False)
        return messages[-1][1] if messages else ""

    def incoming_messages(self) -> List[Tuple[str, str]]:
        """All incoming messages in the open chat as (data-id, text), oldest first."""
        out = []
        for element, msg_id in self._message_elements(incoming=True):
            try:
                text = self._extract_text_from_message(element)
            except StaleElementReferenceException:
                continue
            if text:
                out.append((msg_id, text))
        return out

    def close(self) -> None:
        """Close browser and cleanup."""
        self.driver.quit()
        logger.info("Browser closed")
