"""Chat interaction: controller, render requests and the Telegram front end."""
