from backoffice.database.connection import Database


async def up(db: Database) -> None:
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id INT AUTO_INCREMENT PRIMARY KEY,
            email VARCHAR(255) NOT NULL UNIQUE,
            password VARCHAR(255) NULL,
            first_name VARCHAR(255) NULL,
            last_name VARCHAR(255) NULL,
            google_id VARCHAR(255) NULL,
            profile_picture VARCHAR(1024) NULL,
            is_confirmed BOOLEAN DEFAULT FALSE,
            last_password_reset_at TIMESTAMP NULL,
            last_email_confirmation_at TIMESTAMP NULL,
            lang VARCHAR(16) DEFAULT 'en',
            theme VARCHAR(32) DEFAULT 'light',
            role ENUM('ADMIN', 'USER') DEFAULT 'USER',
            created_by_id INT NULL,
            updated_by_id INT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP
        )
        """
    )

    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS stores (
            id CHAR(36) PRIMARY KEY,
            name VARCHAR(255) NOT NULL,
            address VARCHAR(512) NULL,
            image_src VARCHAR(1024) NULL,
            created_by_id CHAR(36) NULL,
            updated_by_id CHAR(36) NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP
        )
        """
    )

    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS planograms (
            id CHAR(36) PRIMARY KEY,
            name VARCHAR(255) NOT NULL,
            description TEXT NOT NULL,
            image_src VARCHAR(1024) NULL,
            store_id CHAR(36) NOT NULL,
            created_by_id CHAR(36) NULL,
            updated_by_id CHAR(36) NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
            CONSTRAINT fk_planograms_store_id FOREIGN KEY (store_id) REFERENCES stores(id) ON DELETE CASCADE
        )
        """
    )


async def down(db: Database) -> None:
    await db.execute("DROP TABLE IF EXISTS planograms")
    await db.execute("DROP TABLE IF EXISTS stores")
    await db.execute("DROP TABLE IF EXISTS users")
